"""Tests for batched fact scoring and the id join."""

import json
from typing import Any

import pytest
from conftest import FakeAdapter, high_score, json_response, make_facts, scoring_ids

from masterflasher_core.model_adapters.base import FinishReason, ModelResponse
from masterflasher_core.pipeline.score_facts import (
    build_scoring_prompt,
    join_scores,
    score_facts,
    score_facts_with_report,
    scores_from_payload,
)
from masterflasher_core.schemas.facts import FactScore, FactScores
from masterflasher_core.schemas.results import Ok, PartialFailure
from masterflasher_core.settings.config import PipelineConfig


class TestScoresFromPayload:
    """Tests for score entry validation."""

    def test_drops_entries_missing_required_fields(self) -> None:
        payload = [
            high_score("a"),
            {"id": "b", "score_total": 12},
            {"scores": {}, "score_total": 12},
            {"id": "c", "scores": {}, "score_total": "twelve"},
            {"id": "zzz", "scores": {}, "score_total": 3},
        ]
        outcome = scores_from_payload(payload, {"a", "b", "c"})

        assert isinstance(outcome, Ok)
        assert [score.id for score in outcome.value] == ["a"]

    def test_non_array_is_partial_failure(self) -> None:
        assert isinstance(scores_from_payload({"oops": 1}, {"a"}), PartialFailure)

    def test_recomputes_drifted_total(self) -> None:
        entry = {
            "id": "a",
            "scores": {
                "centrality": 1,
                "non_obviousness": 1,
                "leverage": 1,
                "testability": 1,
                "transfer": 1,
            },
            "score_total": 17,
        }
        outcome = scores_from_payload([entry], {"a"})

        assert isinstance(outcome, Ok)
        assert outcome.value[0].score_total == 6

    def test_keeps_declared_total_when_recompute_disabled(self) -> None:
        entry = {**high_score("a"), "score_total": 2}
        outcome = scores_from_payload([entry], {"a"}, recompute_total=False)

        assert isinstance(outcome, Ok)
        assert outcome.value[0].score_total == 2

    def test_out_of_range_dimensions_are_clamped(self) -> None:
        scores = FactScores.model_validate(
            {"centrality": 7, "non_obviousness": -2, "leverage": 2.6, "testability": None}
        )

        assert scores.centrality == 3
        assert scores.non_obviousness == 0
        assert scores.leverage == 3
        assert scores.testability == 0
        assert scores.weighted_total() == 9


def test_join_preserves_order_and_leaves_gaps() -> None:
    facts = make_facts(3)
    scores = [
        FactScore.model_validate(high_score("fact-002", 12)),
        FactScore.model_validate(high_score("fact-000", 6)),
    ]
    joined = join_scores(facts, scores)

    assert [f.id for f in joined] == ["fact-000", "fact-001", "fact-002"]
    assert joined[0].score_total == 6
    assert joined[1].score is None
    assert joined[2].score_total == 12


def test_scoring_prompt_lists_ids() -> None:
    facts = make_facts(2)
    prompt = build_scoring_prompt(facts)

    assert scoring_ids(prompt) == ["fact-000", "fact-001"]


@pytest.mark.asyncio
async def test_empty_input_makes_no_call() -> None:
    adapter = FakeAdapter(lambda p, s: pytest.fail("model should not be called"))

    assert await score_facts(adapter, []) == []
    assert adapter.calls == []


@pytest.mark.asyncio
async def test_batches_run_sequentially_with_delay(sleep_recorder) -> None:
    adapter = FakeAdapter(
        lambda p, s: json_response([high_score(fid) for fid in scoring_ids(p)])
    )
    facts = make_facts(120)
    config = PipelineConfig(scoring_batch_size=50, batch_delay_seconds=0.5)

    scored = await score_facts(adapter, facts, config, sleep=sleep_recorder)

    assert [len(scoring_ids(prompt)) for prompt, _ in adapter.calls] == [50, 50, 20]
    assert sleep_recorder.delays == [0.5, 0.5]
    assert [f.id for f in scored] == [f.id for f in facts]
    assert all(f.score is not None for f in scored)


@pytest.mark.asyncio
async def test_join_survives_partial_and_failed_batches(sleep_recorder) -> None:
    """Output length and order match input even when batches misbehave."""
    calls = {"n": 0}

    def handler(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        calls["n"] += 1
        ids = scoring_ids(prompt)
        if calls["n"] == 1:
            # Reordered and incomplete
            return json_response([high_score(fid) for fid in reversed(ids[::2])])
        raise ConnectionError("rate limited")

    facts = make_facts(8)
    config = PipelineConfig(scoring_batch_size=4)
    scored, report = await score_facts_with_report(
        FakeAdapter(handler), facts, config, sleep=sleep_recorder
    )

    assert [f.id for f in scored] == [f.id for f in facts]
    assert [f.score is not None for f in scored] == [
        True, False, True, False, False, False, False, False,
    ]
    assert len(report.failures) == 1
    assert report.failures[0].unit == "batch 2/2"


@pytest.mark.asyncio
async def test_truncated_batch_still_used() -> None:
    facts = make_facts(3)
    entries = [high_score(f.id) for f in facts[:2]]
    text = f'[{", ".join(json.dumps(e) for e in entries)}, {{"id": "fact-002", "sc'
    adapter = FakeAdapter(
        lambda p, s: ModelResponse(text=text, finish_reason=FinishReason.MAX_TOKENS)
    )

    scored = await score_facts(adapter, facts)

    assert [f.score is not None for f in scored] == [True, True, False]
