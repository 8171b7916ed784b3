"""Tests for concurrent per-chunk fact extraction."""

import asyncio
from typing import Any

import pytest
from conftest import FakeAdapter, json_response
from pydantic import ValidationError

from masterflasher_core.model_adapters.base import (
    BaseModelAdapter,
    FinishReason,
    ModelResponse,
)
from masterflasher_core.pipeline.extract_facts import (
    build_extraction_prompt,
    clip_fact,
    extract_facts,
    extract_facts_with_report,
    facts_from_payload,
)
from masterflasher_core.schemas.facts import FACT_MAX_CHARS, Fact
from masterflasher_core.schemas.results import Ok, PartialFailure
from masterflasher_core.settings.config import PipelineConfig
from masterflasher_core.settings.prompts import FACT_EXTRACTION_SYSTEM_CONSTRAINTS

TWO_CHUNK_TEXT = "First chunk sentence here. " * 2 + "Second chunk sentence now. " * 2
TWO_CHUNK_CONFIG = PipelineConfig(max_chunk_chars=60)


class TestBuildPrompt:
    """Tests for extraction prompt assembly."""

    def test_constraints_follow_custom_instructions(self) -> None:
        prompt = build_extraction_prompt("Body text.", "My Title", "Only list dates.")

        assert prompt.startswith("Only list dates.")
        assert prompt.index(FACT_EXTRACTION_SYSTEM_CONSTRAINTS.strip()) > prompt.index(
            "Only list dates."
        )
        assert "Context/Title: My Title" in prompt
        assert prompt.rstrip().endswith("Body text.")

    def test_missing_title_is_unknown(self) -> None:
        assert "Context/Title: Unknown" in build_extraction_prompt("Body.")


class TestFactsFromPayload:
    """Tests for turning raw payloads into facts."""

    def test_assigns_fresh_ids_and_drops_bad_entries(self) -> None:
        payload = {
            "facts": [
                {"fact": "Water boils at 100 C.", "id": "model-id"},
                {"fact": ""},
                {"fact": 42},
                "not an object",
                {"fact": "Ice melts at 0 C.", "context": "physics"},
            ]
        }
        outcome = facts_from_payload(payload)

        assert isinstance(outcome, Ok)
        facts = outcome.value
        assert [f.fact for f in facts] == ["Water boils at 100 C.", "Ice melts at 0 C."]
        assert facts[0].id != "model-id"
        assert facts[0].id != facts[1].id
        assert facts[1].context == "physics"

    def test_missing_facts_array(self) -> None:
        assert isinstance(facts_from_payload({"items": []}), PartialFailure)

    def test_overlong_fact_is_clipped(self) -> None:
        long_fact = "word " * 70
        outcome = facts_from_payload({"facts": [{"fact": long_fact}]})

        clipped = outcome.value[0].fact
        assert len(clipped) <= FACT_MAX_CHARS
        assert long_fact.startswith(clipped)
        assert clipped.endswith("word")


class TestClipFact:
    """Tests for the fact length cap."""

    def test_short_fact_unchanged(self) -> None:
        assert clip_fact("Short fact.") == "Short fact."

    def test_unbroken_text_cut_at_limit(self) -> None:
        assert clip_fact("x" * 300) == "x" * FACT_MAX_CHARS

    def test_model_rejects_overlong_fact(self) -> None:
        with pytest.raises(ValidationError):
            Fact(fact="x" * (FACT_MAX_CHARS + 1))


@pytest.mark.asyncio
async def test_single_chunk_single_call() -> None:
    adapter = FakeAdapter(lambda p, s: json_response({"facts": [{"fact": "A."}, {"fact": "B."}]}))
    response = await extract_facts(adapter, "x" * 100, title="Doc")

    assert len(adapter.calls) == 1
    assert response.source_title == "Doc"
    assert [f.fact for f in response.facts] == ["A.", "B."]


@pytest.mark.asyncio
async def test_failed_chunk_does_not_abort_others() -> None:
    """One chunk's network error leaves the surviving chunk's facts."""

    def handler(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        if "First chunk" in prompt:
            raise ConnectionError("network down")
        return json_response({"facts": [{"fact": f"Fact {i}."} for i in range(3)]})

    adapter = FakeAdapter(handler)
    response, report = await extract_facts_with_report(
        adapter, TWO_CHUNK_TEXT, config=TWO_CHUNK_CONFIG
    )

    assert len(adapter.calls) == 2
    assert len(response.facts) == 3
    assert report.units == 2
    assert len(report.failures) == 1
    assert "network down" in report.failures[0].reason
    assert report.failures[0].unit == "chunk 1/2"


@pytest.mark.asyncio
async def test_unparseable_chunk_is_recovered() -> None:
    def handler(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        if "First chunk" in prompt:
            return ModelResponse(text="Sorry, I cannot help.")
        return json_response({"facts": [{"fact": "Kept."}]})

    response, report = await extract_facts_with_report(
        FakeAdapter(handler), TWO_CHUNK_TEXT, config=TWO_CHUNK_CONFIG
    )

    assert [f.fact for f in response.facts] == ["Kept."]
    assert "invalid JSON" in report.failures[0].reason


@pytest.mark.asyncio
async def test_merges_in_chunk_order_without_dedup() -> None:
    def handler(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        label = "first" if "First chunk" in prompt else "second"
        return json_response({"facts": [{"fact": f"{label}."}, {"fact": "Shared."}]})

    response = await extract_facts(FakeAdapter(handler), TWO_CHUNK_TEXT, config=TWO_CHUNK_CONFIG)

    assert [f.fact for f in response.facts] == ["first.", "Shared.", "second.", "Shared."]
    assert len({f.id for f in response.facts}) == 4


@pytest.mark.asyncio
async def test_all_chunks_failing_returns_empty() -> None:
    def handler(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        raise TimeoutError("slow")

    response = await extract_facts(FakeAdapter(handler), "Some text.")

    assert response.facts == []


@pytest.mark.asyncio
async def test_truncated_response_is_salvaged() -> None:
    text = '{"facts": [{"fact": "Complete."}, {"fact": "Cut of'
    adapter = FakeAdapter(
        lambda p, s: ModelResponse(text=text, finish_reason=FinishReason.MAX_TOKENS)
    )
    response = await extract_facts(adapter, "Some text.")

    assert [f.fact for f in response.facts] == ["Complete."]


class GatedAdapter(BaseModelAdapter):
    """Adapter whose calls block until ``expected`` calls are in flight."""

    def __init__(self, expected: int):
        self.expected = expected
        self.in_flight = 0
        self.max_in_flight = 0
        self.all_started = asyncio.Event()

    async def generate_content(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = 8192,
    ) -> ModelResponse:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.in_flight >= self.expected:
            self.all_started.set()
        try:
            await asyncio.wait_for(self.all_started.wait(), timeout=2)
        finally:
            self.in_flight -= 1
        return json_response({"facts": [{"fact": "Chunk fact."}]})


@pytest.mark.asyncio
async def test_chunk_calls_run_concurrently() -> None:
    """Every chunk call is issued before any of them completes."""
    adapter = GatedAdapter(expected=2)

    response = await extract_facts(adapter, TWO_CHUNK_TEXT, config=TWO_CHUNK_CONFIG)

    assert adapter.max_in_flight == 2
    assert len(response.facts) == 2
