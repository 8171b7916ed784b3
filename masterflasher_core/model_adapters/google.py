"""Google Gemini model adapter."""

import asyncio
from typing import Any

from masterflasher_core.model_adapters.base import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    BaseModelAdapter,
    FinishReason,
    ModelResponse,
)
from masterflasher_core.settings.config import DEFAULT_MODEL, GeminiConfig
from masterflasher_core.utils.logging import get_logger
from masterflasher_core.utils.retry import RateLimitError, with_retry

logger = get_logger(__name__)

# Default timeout for a single generate call (seconds)
DEFAULT_TIMEOUT = 120.0

# Gemini's protobuf enum values for Candidate.FinishReason
_FINISH_REASONS = {
    0: FinishReason.UNSPECIFIED,
    1: FinishReason.STOP,
    2: FinishReason.MAX_TOKENS,
    3: FinishReason.SAFETY,
    4: FinishReason.RECITATION,
    5: FinishReason.OTHER,
}


def _wrap_google_error(e: Exception) -> Exception:
    """Map Google API errors onto the retryable exception types.

    Args:
        e: Original exception from the Gemini client

    Returns:
        RateLimitError for quota errors, ConnectionError for server errors,
        otherwise the original exception
    """
    error_str = str(e).lower()
    error_type = type(e).__name__

    if any(
        marker in error_str
        for marker in ("resource exhausted", "quota", "rate limit", "429")
    ) or error_type in ("ResourceExhausted", "TooManyRequests"):
        return RateLimitError(f"Gemini rate limit: {e}")

    if any(
        marker in error_str for marker in ("500", "503", "unavailable", "deadline")
    ) or error_type in ("ServiceUnavailable", "InternalServerError", "DeadlineExceeded"):
        return ConnectionError(f"Gemini server error: {e}")

    return e


def _finish_reason(candidate: Any) -> FinishReason:
    """Normalize a candidate's finish reason (enum, int, or name)."""
    raw = getattr(candidate, "finish_reason", None)
    if raw is None:
        return FinishReason.UNSPECIFIED
    name = getattr(raw, "name", None)
    if isinstance(name, str) and name in FinishReason.__members__:
        return FinishReason[name]
    if isinstance(raw, int):
        return _FINISH_REASONS.get(raw, FinishReason.OTHER)
    if isinstance(raw, str) and raw.upper() in FinishReason.__members__:
        return FinishReason[raw.upper()]
    return FinishReason.OTHER


class GoogleAdapter(BaseModelAdapter):
    """Adapter for Google Gemini text models."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 3,
    ):
        """Initialize the Gemini adapter.

        Args:
            api_key: Google AI API key
            model_name: Gemini model to call
            timeout: Request timeout in seconds
            max_retries: Maximum attempts for transient failures
        """
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.max_retries = max_retries

        self._client: Any = None
        logger.info(f"Initialized Gemini adapter (model={model_name})")

    @classmethod
    def from_config(cls, config: GeminiConfig, **kwargs: Any) -> "GoogleAdapter":
        """Build an adapter from resolved Gemini configuration."""
        return cls(api_key=config.api_key, model_name=config.model_name, **kwargs)

    @property
    def client(self) -> Any:
        """Lazy-load the Google Generative AI client."""
        if self._client is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai
        return self._client

    async def generate_content(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> ModelResponse:
        """Call Gemini for a JSON response, retrying transient failures."""

        async def _make_request() -> ModelResponse:
            try:
                model = self.client.GenerativeModel(
                    model_name=self.model_name,
                    generation_config={
                        "response_mime_type": "application/json",
                        "response_schema": response_schema,
                        "max_output_tokens": max_output_tokens,
                    },
                )
                response = await asyncio.wait_for(
                    asyncio.to_thread(model.generate_content, prompt),
                    timeout=self.timeout,
                )
            except Exception as e:
                raise _wrap_google_error(e) from e

            if not response.candidates:
                logger.warning("Gemini returned no candidates")
                return ModelResponse(text="", finish_reason=FinishReason.OTHER)

            candidate = response.candidates[0]
            finish_reason = _finish_reason(candidate)
            if finish_reason not in (FinishReason.STOP, FinishReason.UNSPECIFIED):
                logger.warning(f"Gemini finished with reason {finish_reason.value}")

            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or []
            text = "".join(part.text for part in parts if hasattr(part, "text"))
            return ModelResponse(text=text, finish_reason=finish_reason)

        logger.debug(f"Calling {self.model_name} ({len(prompt)} prompt chars)")
        result = await with_retry(
            _make_request,
            max_attempts=self.max_retries,
            operation_name=f"generate_content[{self.model_name}]",
        )
        logger.debug(
            f"{self.model_name} returned {len(result.text)} chars "
            f"(finish_reason={result.finish_reason.value})"
        )
        return result
