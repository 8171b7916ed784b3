"""LangGraph pipeline and its runner."""

from masterflasher_core.graph.build_flashcard_graph import (
    FlashcardPipelineState,
    build_flashcard_graph,
)
from masterflasher_core.graph.runner import PipelineResult, create_flashcards

__all__ = [
    "FlashcardPipelineState",
    "build_flashcard_graph",
    "PipelineResult",
    "create_flashcards",
]
