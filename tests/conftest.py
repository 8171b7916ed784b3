"""Shared fixtures: a scriptable model adapter and canned model behaviour."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from masterflasher_core.model_adapters.base import (
    BaseModelAdapter,
    FinishReason,
    ModelResponse,
)
from masterflasher_core.pipeline.extract_facts import FACTS_SCHEMA
from masterflasher_core.pipeline.score_facts import SCORES_SCHEMA
from masterflasher_core.pipeline.write_cards import FLASHCARDS_SCHEMA
from masterflasher_core.schemas.facts import Fact

Handler = Callable[[str, dict[str, Any]], ModelResponse]


class FakeAdapter(BaseModelAdapter):
    """Adapter that records prompts and answers through a handler."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def generate_content(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = 8192,
    ) -> ModelResponse:
        self.calls.append((prompt, response_schema))
        return self.handler(prompt, response_schema)

    def calls_for(self, schema: dict[str, Any]) -> list[str]:
        """Prompts sent with the given response schema."""
        return [prompt for prompt, sent in self.calls if sent is schema]


def json_response(payload: Any, finish_reason: FinishReason = FinishReason.STOP) -> ModelResponse:
    return ModelResponse(text=json.dumps(payload), finish_reason=finish_reason)


def payload_after(prompt: str, marker: str) -> list[dict[str, Any]]:
    """Decode the JSON array a stage appended after ``marker``."""
    return json.loads(prompt.split(marker, 1)[1])


def scoring_ids(prompt: str) -> list[str]:
    return [item["id"] for item in payload_after(prompt, "Facts to score:\n")]


def card_concepts(prompt: str) -> list[dict[str, Any]]:
    return payload_after(prompt, "Concepts:\n")


def high_score(fact_id: str, total: int = 15) -> dict[str, Any]:
    """A score entry whose declared total matches its dimensions."""
    dims = {
        "centrality": 3,
        "non_obviousness": 3,
        "leverage": 3,
        "testability": 3,
        "transfer": 0,
    }
    # Spend the requested total from the top down so it stays consistent.
    remaining = total
    for name in ("centrality", "non_obviousness", "leverage", "testability", "transfer"):
        weight = 2 if name == "centrality" else 1
        dims[name] = min(3, remaining // weight)
        remaining -= dims[name] * weight
    return {"id": fact_id, "scores": dims, "score_total": total}


def pipeline_handler(
    facts: list[str],
    total: int = 15,
) -> Handler:
    """Handler that extracts ``facts``, scores each ``total``, and cards them."""

    def handle(prompt: str, schema: dict[str, Any]) -> ModelResponse:
        if schema is FACTS_SCHEMA:
            return json_response({"facts": [{"fact": text} for text in facts]})
        if schema is SCORES_SCHEMA:
            return json_response([high_score(fid, total) for fid in scoring_ids(prompt)])
        if schema is FLASHCARDS_SCHEMA:
            return json_response(
                {
                    "deck": "Model Deck",
                    "cards": [
                        {"front": f"Q: {c['fact']}", "back": f"A: {c['fact']}", "tags": ["t"]}
                        for c in card_concepts(prompt)
                    ],
                }
            )
        raise AssertionError(f"unexpected schema {schema}")

    return handle


def make_facts(count: int) -> list[Fact]:
    return [Fact(id=f"fact-{i:03d}", fact=f"Fact number {i}.") for i in range(count)]


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
