"""Flashcard generation: one card per fact, in sequential batches."""

import asyncio
import json
from typing import Any

from masterflasher_core.model_adapters.base import BaseModelAdapter
from masterflasher_core.pipeline.batching import (
    Sleep,
    make_batches,
    run_batches_sequentially,
)
from masterflasher_core.pipeline.parsing import parse_model_json
from masterflasher_core.schemas.cards import CARD_TYPE_BASIC, FlashcardsResponse
from masterflasher_core.schemas.facts import Fact
from masterflasher_core.schemas.results import Ok, Outcome, PartialFailure, StageReport
from masterflasher_core.settings.config import PipelineConfig
from masterflasher_core.settings.prompts import (
    DEFAULT_FLASHCARD_CREATION_PROMPT,
    FLASHCARD_CREATION_SYSTEM_CONSTRAINTS,
)
from masterflasher_core.utils.logging import get_logger
from masterflasher_core.utils.retry import describe_exception
from masterflasher_core.validation.validate import validate_flashcards_response

logger = get_logger(__name__)

FLASHCARDS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "deck": {"type": "STRING"},
        "cards": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "front": {"type": "STRING"},
                    "back": {"type": "STRING"},
                    "tags": {"type": "ARRAY", "items": {"type": "STRING"}},
                },
                "required": ["front", "back"],
            },
        },
    },
    "required": ["deck", "cards"],
}


def build_flashcard_prompt(
    facts: list[Fact],
    deck_name: str,
    instructions: str | None = None,
) -> str:
    """Assemble the prompt for one batch of facts.

    Args:
        facts: Facts to turn into cards
        deck_name: Deck the cards are destined for
        instructions: User instruction text; defaults to the built-in prompt

    Returns:
        Instructions, then the fixed system constraints, then the facts as JSON
    """
    concepts = json.dumps(
        [fact.model_dump(exclude_none=True) for fact in facts],
        indent=2,
        ensure_ascii=False,
    )
    return (
        f"{instructions or DEFAULT_FLASHCARD_CREATION_PROMPT}"
        f"{FLASHCARD_CREATION_SYSTEM_CONSTRAINTS}\n\n"
        f"Deck Name: {deck_name}\n\n"
        f"Concepts:\n{concepts}\n"
    )


def cards_from_payload(payload: Any) -> Outcome[list[Any]]:
    """Pull the card list out of a parsed response and tag every card basic.

    Non-object entries are passed through untouched so the validator can
    reject them.
    """
    if isinstance(payload, dict) and isinstance(payload.get("cards"), list):
        raw_cards = payload["cards"]
    elif isinstance(payload, list):
        raw_cards = payload
    else:
        return PartialFailure('response has no "cards" array')

    return Ok(
        [
            {**card, "type": CARD_TYPE_BASIC} if isinstance(card, dict) else card
            for card in raw_cards
        ]
    )


async def generate_flashcards_with_report(
    adapter: BaseModelAdapter,
    facts: list[Fact],
    instructions: str | None = None,
    config: PipelineConfig | None = None,
    sleep: Sleep = asyncio.sleep,
) -> tuple[FlashcardsResponse, StageReport]:
    """Generate and validate flashcards, reporting per-batch failures.

    Args:
        adapter: Model adapter
        facts: Facts to card, one card each
        instructions: User instruction text for card creation
        config: Pipeline configuration
        sleep: Delay primitive used between batches

    Returns:
        Validated flashcards in fact order, plus the stage report

    Raises:
        SchemaViolationError: If the merged cards fail validation
    """
    config = config or PipelineConfig()
    report = StageReport(stage="write_cards")
    if not facts:
        # No model call: an empty prompt invites the model to invent content.
        logger.info("No facts provided, returning empty deck")
        return FlashcardsResponse(deck=config.deck_name, cards=[]), report

    batches = make_batches(facts, config.flashcard_batch_size)
    logger.info(f"Generating cards for {len(facts)} facts in {len(batches)} batch(es)")

    async def write_batch(batch: list[Fact], index: int, total: int) -> Outcome[list[Any]]:
        unit = f"batch {index + 1}/{total}"
        prompt = build_flashcard_prompt(batch, config.deck_name, instructions)
        logger.debug(f"Cards {unit}: {len(batch)} facts, {len(prompt)} prompt chars")
        try:
            response = await adapter.generate_content(
                prompt, FLASHCARDS_SCHEMA, config.max_output_tokens
            )
        except Exception as e:
            return PartialFailure(describe_exception(e), unit)

        if response.truncated:
            logger.warning(f"Cards {unit} was truncated (MAX_TOKENS)")

        parsed = parse_model_json(response.text, truncated=response.truncated)
        if isinstance(parsed, PartialFailure):
            return PartialFailure(parsed.reason, unit)

        outcome = cards_from_payload(parsed.value)
        if isinstance(outcome, PartialFailure):
            return PartialFailure(outcome.reason, unit)
        logger.debug(f"Cards {unit}: {len(outcome.value)} cards")
        return outcome

    raw_cards = await run_batches_sequentially(
        batches, write_batch, report, config.batch_delay_seconds, sleep
    )

    validated = validate_flashcards_response(
        {"deck": config.deck_name, "cards": raw_cards}, max_cards=config.max_cards
    )
    response = FlashcardsResponse.model_validate(validated)
    logger.info(
        f"Generated {len(response.cards)} cards "
        f"({len(report.failures)}/{len(batches)} batches failed)"
    )
    return response, report


async def generate_flashcards(
    adapter: BaseModelAdapter,
    facts: list[Fact],
    instructions: str | None = None,
    config: PipelineConfig | None = None,
    sleep: Sleep = asyncio.sleep,
) -> FlashcardsResponse:
    """Generate validated flashcards for ``facts``."""
    response, _ = await generate_flashcards_with_report(
        adapter, facts, instructions, config, sleep
    )
    return response
