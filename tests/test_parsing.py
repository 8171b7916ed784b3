"""Tests for model response parsing and truncation salvage."""

import json

from masterflasher_core.pipeline.parsing import (
    parse_model_json,
    salvage_truncated_json,
    strip_code_fence,
)
from masterflasher_core.schemas.results import Ok, PartialFailure


def test_strip_code_fence() -> None:
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('{"a": 1}') == '{"a": 1}'


def test_parse_valid_json() -> None:
    outcome = parse_model_json('{"facts": []}')
    assert outcome == Ok({"facts": []})


def test_parse_fenced_json() -> None:
    outcome = parse_model_json('```json\n[1, 2]\n```')
    assert isinstance(outcome, Ok)
    assert outcome.value == [1, 2]


def test_empty_text_is_partial_failure() -> None:
    outcome = parse_model_json("   ")
    assert isinstance(outcome, PartialFailure)
    assert "empty" in outcome.reason


def test_invalid_json_is_partial_failure() -> None:
    outcome = parse_model_json("I could not do that")
    assert isinstance(outcome, PartialFailure)
    assert "invalid JSON" in outcome.reason


def test_truncated_array_is_salvaged() -> None:
    text = '[{"id": "a", "score_total": 10}, {"id": "b", "sco'
    outcome = parse_model_json(text, truncated=True)

    assert isinstance(outcome, Ok)
    assert outcome.value == [{"id": "a", "score_total": 10}]


def test_truncated_object_is_salvaged() -> None:
    text = '{"deck": "D", "cards": [{"front": "Q1", "back": "A1"}, {"front": "Q2'
    outcome = parse_model_json(text, truncated=True)

    assert isinstance(outcome, Ok)
    assert outcome.value == {"deck": "D", "cards": [{"front": "Q1", "back": "A1"}]}


def test_truncation_not_salvaged_unless_flagged() -> None:
    text = '[{"id": "a"}, {"id": "b'
    assert isinstance(parse_model_json(text), PartialFailure)


def test_salvage_respects_braces_inside_strings() -> None:
    text = '[{"fact": "uses } and ] chars"}, {"fact": "cut'
    repaired = salvage_truncated_json(text)

    assert repaired is not None
    assert json.loads(repaired) == [{"fact": "uses } and ] chars"}]


def test_salvage_without_complete_object() -> None:
    assert salvage_truncated_json('[{"id": "a"') is None
