"""Fact extraction: one model call per chunk, run concurrently.

Each chunk is extracted independently. A chunk whose call raises, returns
unparseable text, or returns the wrong shape contributes no facts; the other
chunks are unaffected. Ids are always assigned locally.
"""

import asyncio
from typing import Any

from masterflasher_core.model_adapters.base import BaseModelAdapter
from masterflasher_core.pipeline.chunker import chunk_text
from masterflasher_core.pipeline.parsing import parse_model_json
from masterflasher_core.schemas.facts import (
    FACT_MAX_CHARS,
    Fact,
    FactsResponse,
    new_fact_id,
)
from masterflasher_core.schemas.results import Ok, Outcome, PartialFailure, StageReport
from masterflasher_core.settings.config import PipelineConfig
from masterflasher_core.settings.prompts import (
    DEFAULT_FACT_EXTRACTION_PROMPT,
    FACT_EXTRACTION_SYSTEM_CONSTRAINTS,
)
from masterflasher_core.utils.logging import get_logger
from masterflasher_core.utils.retry import describe_exception
from masterflasher_core.validation.validate import validate_facts_response

logger = get_logger(__name__)

FACTS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "sourceTitle": {"type": "STRING"},
        "facts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {"fact": {"type": "STRING"}},
                "required": ["fact"],
            },
        },
    },
    "required": ["facts"],
}


def build_extraction_prompt(
    chunk: str,
    title: str | None = None,
    instructions: str | None = None,
) -> str:
    """Assemble the prompt for one chunk.

    Args:
        chunk: Source text for this call
        title: Source title, if known
        instructions: User instruction text; defaults to the built-in prompt

    Returns:
        Instructions, then the fixed system constraints, then the payload
    """
    return (
        f"{instructions or DEFAULT_FACT_EXTRACTION_PROMPT}"
        f"{FACT_EXTRACTION_SYSTEM_CONSTRAINTS}\n\n"
        f"Context/Title: {title or 'Unknown'}\n"
        f"Text:\n{chunk}\n"
    )


def clip_fact(text: str, max_chars: int = FACT_MAX_CHARS) -> str:
    """Cut an over-long fact back to ``max_chars`` at a word boundary."""
    if len(text) <= max_chars:
        return text
    clipped = text[:max_chars]
    if not text[max_chars].isspace() and " " in clipped:
        clipped = clipped.rsplit(" ", 1)[0]
    clipped = clipped.rstrip()
    logger.warning(
        f"Fact exceeds {max_chars} chars ({len(text)}), truncated: {clipped[:60]!r}..."
    )
    return clipped


def facts_from_payload(payload: Any) -> Outcome[list[Fact]]:
    """Turn a parsed extraction payload into facts with fresh ids.

    Entries without a non-empty string ``fact`` are dropped silently; facts
    longer than ``FACT_MAX_CHARS`` are clipped with a warning.
    """
    if isinstance(payload, list):
        raw_facts = payload
    elif isinstance(payload, dict) and isinstance(payload.get("facts"), list):
        raw_facts = payload["facts"]
    else:
        return PartialFailure('response has no "facts" array')

    facts: list[Fact] = []
    for raw in raw_facts:
        if not isinstance(raw, dict):
            continue
        text = raw.get("fact")
        if not isinstance(text, str) or not text.strip():
            continue
        context = raw.get("context")
        facts.append(
            Fact(
                id=new_fact_id(),
                fact=clip_fact(text.strip()),
                context=context if isinstance(context, str) and context else None,
            )
        )
    return Ok(facts)


async def extract_chunk(
    adapter: BaseModelAdapter,
    chunk: str,
    title: str | None,
    instructions: str | None,
    config: PipelineConfig,
) -> Outcome[list[Fact]]:
    """Extract facts from one chunk; never raises for model-side failures."""
    prompt = build_extraction_prompt(chunk, title, instructions)
    try:
        response = await adapter.generate_content(
            prompt, FACTS_SCHEMA, config.max_output_tokens
        )
    except Exception as e:
        return PartialFailure(describe_exception(e))

    if response.truncated:
        logger.warning(f"Extraction response truncated ({len(response.text)} chars)")

    parsed = parse_model_json(response.text, truncated=response.truncated)
    if isinstance(parsed, PartialFailure):
        return parsed
    return facts_from_payload(parsed.value)


async def extract_facts_with_report(
    adapter: BaseModelAdapter,
    text: str,
    title: str | None = None,
    instructions: str | None = None,
    config: PipelineConfig | None = None,
) -> tuple[FactsResponse, StageReport]:
    """Extract facts from text and report per-chunk failures.

    Args:
        adapter: Model adapter
        text: Raw source text
        title: Source title, if known
        instructions: User instruction text for extraction
        config: Pipeline configuration

    Returns:
        Merged facts in chunk order, plus the stage report
    """
    config = config or PipelineConfig()
    report = StageReport(stage="extract_facts")

    chunks = chunk_text(text, config.max_chunk_chars)
    total = len(chunks)
    logger.info(f"Extracting facts from {total} chunk(s) ({len(text)} chars)")

    results = await asyncio.gather(
        *(extract_chunk(adapter, chunk, title, instructions, config) for chunk in chunks),
        return_exceptions=True,
    )

    facts: list[Fact] = []
    for index, result in enumerate(results):
        unit = f"chunk {index + 1}/{total}"
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            outcome: Outcome[list[Fact]] = PartialFailure(describe_exception(result), unit)
        elif isinstance(result, PartialFailure):
            outcome = PartialFailure(result.reason, unit)
        else:
            outcome = result

        report.record(outcome)
        if isinstance(outcome, PartialFailure):
            logger.error(f"Fact extraction failed for {unit}: {outcome.reason}")
        else:
            logger.debug(f"{unit}: {len(outcome.value)} facts")
            facts.extend(outcome.value)

    validated = validate_facts_response(
        {"facts": [fact.model_dump() for fact in facts]}, max_facts=config.max_facts
    )
    response = FactsResponse(source_title=title, facts=validated["facts"])
    logger.info(
        f"Extracted {len(response.facts)} facts "
        f"({len(report.failures)}/{total} chunks failed)"
    )
    return response, report


async def extract_facts(
    adapter: BaseModelAdapter,
    text: str,
    title: str | None = None,
    instructions: str | None = None,
    config: PipelineConfig | None = None,
) -> FactsResponse:
    """Extract facts from text, tolerating per-chunk failures."""
    response, _ = await extract_facts_with_report(
        adapter, text, title, instructions, config
    )
    return response
