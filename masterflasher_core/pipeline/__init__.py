"""Fact extraction and flashcard generation stages.

Data flows strictly left to right::

    text -> chunks -> facts -> scored facts -> filtered facts -> flashcards

Every model-backed stage takes a ``BaseModelAdapter`` so it can be exercised
with a stub.
"""

from masterflasher_core.pipeline.chunker import chunk_text
from masterflasher_core.pipeline.extract_facts import (
    extract_facts,
    extract_facts_with_report,
)
from masterflasher_core.pipeline.filter_facts import filter_scored_facts
from masterflasher_core.pipeline.score_facts import score_facts, score_facts_with_report
from masterflasher_core.pipeline.write_cards import (
    generate_flashcards,
    generate_flashcards_with_report,
)

__all__ = [
    "chunk_text",
    "extract_facts",
    "extract_facts_with_report",
    "score_facts",
    "score_facts_with_report",
    "filter_scored_facts",
    "generate_flashcards",
    "generate_flashcards_with_report",
]
