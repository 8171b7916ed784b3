"""Fact scoring: rate each fact's learning value in sequential batches.

The model returns, per fact id, five 0-3 dimension scores and a declared
total. Scores are joined back onto the input facts by id, so the output has
the same length and order as the input whatever the model returned. Facts
the model skipped come back unscored.
"""

import asyncio
import json
from typing import Any

from pydantic import ValidationError

from masterflasher_core.model_adapters.base import BaseModelAdapter
from masterflasher_core.pipeline.batching import (
    Sleep,
    make_batches,
    run_batches_sequentially,
)
from masterflasher_core.pipeline.parsing import parse_model_json
from masterflasher_core.schemas.facts import Fact, FactScore, ScoredFact
from masterflasher_core.schemas.results import Ok, Outcome, PartialFailure, StageReport
from masterflasher_core.settings.config import PipelineConfig
from masterflasher_core.settings.prompts import FACT_SCORING_PROMPT
from masterflasher_core.utils.logging import get_logger
from masterflasher_core.utils.retry import describe_exception

logger = get_logger(__name__)

_DIMENSIONS = ("centrality", "non_obviousness", "leverage", "testability", "transfer")

SCORES_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "scores": {
                "type": "OBJECT",
                "properties": {name: {"type": "NUMBER"} for name in _DIMENSIONS},
                "required": list(_DIMENSIONS),
            },
            "score_total": {"type": "NUMBER"},
        },
        "required": ["id", "scores", "score_total"],
    },
}


def build_scoring_prompt(facts: list[Fact]) -> str:
    """Build the fixed scoring prompt followed by the facts as JSON."""
    facts_json = json.dumps(
        [{"id": fact.id, "fact": fact.fact} for fact in facts],
        indent=2,
        ensure_ascii=False,
    )
    return f"{FACT_SCORING_PROMPT}\n\nFacts to score:\n{facts_json}"


def _is_score_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    total = entry.get("score_total")
    return (
        bool(entry.get("id"))
        and isinstance(entry.get("scores"), dict)
        and isinstance(total, (int, float))
        and not isinstance(total, bool)
    )


def scores_from_payload(
    payload: Any, batch_ids: set[str], recompute_total: bool = True
) -> Outcome[list[FactScore]]:
    """Keep well-formed score entries that refer to facts in the batch.

    Args:
        payload: Parsed response, expected to be an array
        batch_ids: Ids of the facts sent in this batch
        recompute_total: Replace declared totals that disagree with the
            weighted sum of the dimensions

    Returns:
        Ok with valid scores, or PartialFailure if the payload is not an array
    """
    if isinstance(payload, dict) and isinstance(payload.get("scores"), list):
        payload = payload["scores"]
    if not isinstance(payload, list):
        return PartialFailure(f"expected an array of scores, got {type(payload).__name__}")

    scores: list[FactScore] = []
    dropped = 0
    for entry in payload:
        if not _is_score_entry(entry) or str(entry["id"]) not in batch_ids:
            dropped += 1
            continue
        try:
            score = FactScore.model_validate({**entry, "id": str(entry["id"])})
        except ValidationError as e:
            logger.debug(f"Dropping malformed score entry: {e}")
            dropped += 1
            continue
        if recompute_total and not score.is_consistent:
            logger.debug(
                f"Score total drift for {score.id}: declared {score.score_total}, "
                f"weighted {score.scores.weighted_total()}"
            )
            score = score.reconciled()
        scores.append(score)

    if dropped:
        logger.warning(f"Dropped {dropped} invalid score entries")
    return Ok(scores)


def join_scores(facts: list[Fact], scores: list[FactScore]) -> list[ScoredFact]:
    """Attach scores to facts by id, preserving the order of ``facts``."""
    by_id = {score.id: score for score in scores}
    scored: list[ScoredFact] = []
    missing = 0
    for fact in facts:
        score = by_id.get(fact.id)
        if score is None:
            missing += 1
            logger.debug(f"No score returned for fact {fact.id}")
        scored.append(
            ScoredFact(id=fact.id, fact=fact.fact, context=fact.context, score=score)
        )
    if missing:
        logger.warning(f"{missing}/{len(facts)} facts were left unscored")
    return scored


async def score_facts_with_report(
    adapter: BaseModelAdapter,
    facts: list[Fact],
    config: PipelineConfig | None = None,
    sleep: Sleep = asyncio.sleep,
) -> tuple[list[ScoredFact], StageReport]:
    """Score facts batch by batch and report per-batch failures.

    Args:
        adapter: Model adapter
        facts: Facts to score
        config: Pipeline configuration
        sleep: Delay primitive used between batches

    Returns:
        Scored facts in input order, plus the stage report
    """
    config = config or PipelineConfig()
    report = StageReport(stage="score_facts")
    if not facts:
        logger.info("No facts to score")
        return [], report

    batches = make_batches(facts, config.scoring_batch_size)
    logger.info(f"Scoring {len(facts)} facts in {len(batches)} batch(es)")

    async def score_batch(
        batch: list[Fact], index: int, total: int
    ) -> Outcome[list[FactScore]]:
        unit = f"batch {index + 1}/{total}"
        prompt = build_scoring_prompt(batch)
        logger.debug(f"Scoring {unit}: {len(batch)} facts, {len(prompt)} prompt chars")
        try:
            response = await adapter.generate_content(
                prompt, SCORES_SCHEMA, config.max_output_tokens
            )
        except Exception as e:
            return PartialFailure(describe_exception(e), unit)

        if response.truncated:
            logger.warning(f"Scoring {unit} was truncated (MAX_TOKENS)")

        parsed = parse_model_json(response.text, truncated=response.truncated)
        if isinstance(parsed, PartialFailure):
            return PartialFailure(parsed.reason, unit)

        outcome = scores_from_payload(
            parsed.value,
            {fact.id for fact in batch},
            recompute_total=config.recompute_score_total,
        )
        if isinstance(outcome, PartialFailure):
            return PartialFailure(outcome.reason, unit)
        logger.debug(f"Scoring {unit}: {len(outcome.value)} scores")
        return outcome

    scores = await run_batches_sequentially(
        batches, score_batch, report, config.batch_delay_seconds, sleep
    )
    logger.info(f"Received {len(scores)} scores for {len(facts)} facts")
    return join_scores(facts, scores), report


async def score_facts(
    adapter: BaseModelAdapter,
    facts: list[Fact],
    config: PipelineConfig | None = None,
    sleep: Sleep = asyncio.sleep,
) -> list[ScoredFact]:
    """Score facts; unscorable facts come back with ``score=None``."""
    scored, _ = await score_facts_with_report(adapter, facts, config, sleep)
    return scored
