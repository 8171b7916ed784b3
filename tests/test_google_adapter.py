"""Tests for the Gemini adapter's error and finish-reason mapping."""

from enum import Enum
from types import SimpleNamespace

import pytest

from masterflasher_core.model_adapters import FinishReason, GoogleAdapter
from masterflasher_core.model_adapters.base import ModelResponse
from masterflasher_core.model_adapters.google import _finish_reason, _wrap_google_error
from masterflasher_core.settings import GeminiConfig
from masterflasher_core.utils.retry import RateLimitError


class ResourceExhausted(Exception):
    pass


class _ProtoFinishReason(Enum):
    STOP = 1
    MAX_TOKENS = 2


class TestErrorMapping:
    """Tests for mapping Gemini client errors onto retryable types."""

    def test_quota_error_is_rate_limit(self) -> None:
        assert isinstance(_wrap_google_error(ResourceExhausted("slow down")), RateLimitError)
        assert isinstance(_wrap_google_error(Exception("429 Too Many Requests")), RateLimitError)

    def test_server_error_is_connection_error(self) -> None:
        assert isinstance(_wrap_google_error(Exception("503 Service Unavailable")), ConnectionError)

    def test_other_errors_pass_through(self) -> None:
        error = ValueError("API key not valid")
        assert _wrap_google_error(error) is error


class TestFinishReason:
    """Tests for finish-reason normalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (_ProtoFinishReason.MAX_TOKENS, FinishReason.MAX_TOKENS),
            (_ProtoFinishReason.STOP, FinishReason.STOP),
            (2, FinishReason.MAX_TOKENS),
            (3, FinishReason.SAFETY),
            ("recitation", FinishReason.RECITATION),
            (None, FinishReason.UNSPECIFIED),
            (42, FinishReason.OTHER),
        ],
    )
    def test_normalizes(self, raw, expected: FinishReason) -> None:
        assert _finish_reason(SimpleNamespace(finish_reason=raw)) is expected


def test_truncated_flag() -> None:
    assert ModelResponse(text="{", finish_reason=FinishReason.MAX_TOKENS).truncated
    assert not ModelResponse(text="{}").truncated


def test_from_config() -> None:
    adapter = GoogleAdapter.from_config(GeminiConfig(api_key="k", model_name="gemini-pro"))

    assert adapter.api_key == "k"
    assert adapter.model_name == "gemini-pro"
