"""Entry point that resolves configuration and runs the flashcard graph."""

import asyncio
from collections.abc import Callable

from pydantic import BaseModel, Field

from masterflasher_core.graph.build_flashcard_graph import build_flashcard_graph
from masterflasher_core.model_adapters.base import BaseModelAdapter
from masterflasher_core.pipeline.batching import Sleep
from masterflasher_core.schemas.cards import ExtractedContent, FlashcardsResponse
from masterflasher_core.schemas.facts import Fact, ScoredFact
from masterflasher_core.settings.config import (
    ConfigProvider,
    GeminiConfig,
    PipelineConfig,
    require_config,
)
from masterflasher_core.settings.prompts import DefaultPromptProvider, PromptProvider
from masterflasher_core.utils.logging import get_logger, log_exceptions

logger = get_logger(__name__)

AdapterFactory = Callable[[GeminiConfig], BaseModelAdapter]


class PipelineResult(BaseModel):
    """Output of one pipeline run, with every stage boundary exposed."""

    facts: list[Fact] = Field(default_factory=list)
    scored_facts: list[ScoredFact] = Field(default_factory=list)
    filtered_facts: list[Fact] = Field(default_factory=list)
    flashcards: FlashcardsResponse
    errors: list[str] = Field(default_factory=list, description="Per-unit failures")

    @property
    def is_empty(self) -> bool:
        """True when the run legitimately produced no cards."""
        return not self.flashcards.cards


def _default_adapter_factory(config: GeminiConfig) -> BaseModelAdapter:
    from masterflasher_core.model_adapters.google import GoogleAdapter

    return GoogleAdapter.from_config(config)


@log_exceptions(logger, operation="Flashcard pipeline")
async def create_flashcards(
    content: ExtractedContent | str,
    config_provider: ConfigProvider,
    prompt_provider: PromptProvider | None = None,
    adapter_factory: AdapterFactory | None = None,
    config: PipelineConfig | None = None,
    sleep: Sleep = asyncio.sleep,
) -> PipelineResult:
    """Run the whole pipeline on captured content.

    Args:
        content: Extracted content, or raw text
        config_provider: Source of the Gemini API key and model
        prompt_provider: Source of user instruction text
        adapter_factory: Builds the model adapter from resolved config
        config: Pipeline configuration
        sleep: Delay primitive for inter-batch throttling

    Returns:
        Facts, scores, filtered facts, validated flashcards, and unit errors

    Raises:
        MissingConfigurationError: If no API key is configured (no model call
            is made)
        SchemaViolationError: If generated cards fail validation
    """
    if isinstance(content, str):
        content = ExtractedContent(text=content)

    gemini_config = await require_config(config_provider)
    prompts = await (prompt_provider or DefaultPromptProvider()).resolve()
    adapter = (adapter_factory or _default_adapter_factory)(gemini_config)
    pipeline_config = config or PipelineConfig()

    title = content.title or content.url
    logger.info(
        f"Starting pipeline for {title or 'untitled content'} "
        f"({len(content.text)} chars, model={gemini_config.model_name})"
    )

    graph = build_flashcard_graph(adapter, prompts, pipeline_config, sleep=sleep)
    state = await graph.ainvoke({"text": content.text, "title": title})

    result = PipelineResult(
        facts=state.get("facts", []),
        scored_facts=state.get("scored_facts", []),
        filtered_facts=state.get("filtered_facts", []),
        flashcards=state.get("flashcards")
        or FlashcardsResponse(deck=pipeline_config.deck_name),
        errors=state.get("errors", []),
    )
    logger.info(
        f"Pipeline finished: {len(result.facts)} facts, "
        f"{len(result.filtered_facts)} kept, {len(result.flashcards.cards)} cards, "
        f"{len(result.errors)} unit errors"
    )
    return result
