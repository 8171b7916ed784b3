"""Build the fact-to-flashcard LangGraph pipeline."""

import asyncio
from typing import Annotated, Any, TypedDict

from langgraph.graph import END, StateGraph
from langgraph.types import Checkpointer

from masterflasher_core.model_adapters.base import BaseModelAdapter
from masterflasher_core.pipeline.batching import Sleep
from masterflasher_core.pipeline.extract_facts import extract_facts_with_report
from masterflasher_core.pipeline.filter_facts import filter_scored_facts
from masterflasher_core.pipeline.score_facts import score_facts_with_report
from masterflasher_core.pipeline.write_cards import generate_flashcards_with_report
from masterflasher_core.schemas.cards import FlashcardsResponse
from masterflasher_core.schemas.facts import Fact, ScoredFact
from masterflasher_core.settings.config import PipelineConfig
from masterflasher_core.settings.prompts import ResolvedPrompts
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)


def _keep_last_str(existing: str | None, incoming: str | None) -> str | None:
    """Keep the latest value for step tracking."""
    return incoming if incoming else existing


def _keep_max_int(existing: int, incoming: int) -> int:
    """Progress only moves forward."""
    return max(existing or 0, incoming or 0)


def _merge_errors(existing: list[str], incoming: list[str]) -> list[str]:
    """Append incoming errors, dropping exact repeats."""
    return list(dict.fromkeys([*(existing or []), *(incoming or [])]))


class FlashcardPipelineState(TypedDict, total=False):
    """State passed through the flashcard pipeline."""

    text: str
    title: str | None
    facts: list[Fact]
    scored_facts: list[ScoredFact]
    filtered_facts: list[Fact]
    flashcards: FlashcardsResponse
    current_step: Annotated[str, _keep_last_str]
    progress: Annotated[int, _keep_max_int]
    errors: Annotated[list[str], _merge_errors]


def build_flashcard_graph(
    adapter: BaseModelAdapter,
    prompts: ResolvedPrompts | None = None,
    config: PipelineConfig | None = None,
    checkpointer: Checkpointer | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Build a pipeline that turns raw text into validated flashcards.

    Args:
        adapter: Model adapter for every model call
        prompts: Instruction text in effect for this run
        config: Pipeline configuration
        checkpointer: Optional LangGraph checkpointer
        sleep: Delay primitive for inter-batch throttling

    Returns:
        Compiled StateGraph; invoke with ``{"text": ..., "title": ...}``
    """
    resolved_prompts = prompts or ResolvedPrompts()
    resolved_config = config or PipelineConfig()

    async def extract_facts_node(state: FlashcardPipelineState) -> dict[str, Any]:
        response, report = await extract_facts_with_report(
            adapter,
            state.get("text", ""),
            title=state.get("title"),
            instructions=resolved_prompts.fact_extraction,
            config=resolved_config,
        )
        return {
            "facts": response.facts,
            "errors": report.error_messages(),
            "current_step": "extract_facts",
            "progress": 30,
        }

    async def score_facts_node(state: FlashcardPipelineState) -> dict[str, Any]:
        scored, report = await score_facts_with_report(
            adapter, state.get("facts", []), config=resolved_config, sleep=sleep
        )
        return {
            "scored_facts": scored,
            "errors": report.error_messages(),
            "current_step": "score_facts",
            "progress": 55,
        }

    def filter_facts_node(state: FlashcardPipelineState) -> dict[str, Any]:
        filtered = filter_scored_facts(
            state.get("scored_facts", []),
            threshold=resolved_config.score_threshold,
            max_facts=resolved_config.max_facts_to_pass,
        )
        return {
            "filtered_facts": filtered,
            "current_step": "filter_facts",
            "progress": 65,
        }

    async def write_cards_node(state: FlashcardPipelineState) -> dict[str, Any]:
        if resolved_config.skip_scoring:
            facts = state.get("facts", [])
        else:
            facts = state.get("filtered_facts", [])
        flashcards, report = await generate_flashcards_with_report(
            adapter,
            facts,
            instructions=resolved_prompts.flashcard_creation,
            config=resolved_config,
            sleep=sleep,
        )
        return {
            "flashcards": flashcards,
            "errors": report.error_messages(),
            "current_step": "write_cards",
            "progress": 100,
        }

    def _after_extraction(state: FlashcardPipelineState) -> str:
        """Route around scoring when it is disabled."""
        return "write_cards" if resolved_config.skip_scoring else "score_facts"

    graph = StateGraph(FlashcardPipelineState)

    graph.add_node("extract_facts", extract_facts_node)
    graph.add_node("score_facts", score_facts_node)
    graph.add_node("filter_facts", filter_facts_node)
    graph.add_node("write_cards", write_cards_node)

    graph.set_entry_point("extract_facts")
    graph.add_conditional_edges(
        "extract_facts",
        _after_extraction,
        {"score_facts": "score_facts", "write_cards": "write_cards"},
    )
    graph.add_edge("score_facts", "filter_facts")
    graph.add_edge("filter_facts", "write_cards")
    graph.add_edge("write_cards", END)

    return graph.compile(checkpointer=checkpointer)
