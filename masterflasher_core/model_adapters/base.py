"""Base model adapter interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_MAX_OUTPUT_TOKENS = 8192


class FinishReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    OTHER = "OTHER"
    UNSPECIFIED = "UNSPECIFIED"


@dataclass(frozen=True)
class ModelResponse:
    """Raw text returned by one model call.

    The text is expected to be JSON but is never trusted to be; callers must
    parse it before use.
    """

    text: str
    finish_reason: FinishReason = FinishReason.STOP

    @property
    def truncated(self) -> bool:
        """True when the model ran out of output budget mid-response."""
        return self.finish_reason == FinishReason.MAX_TOKENS


class BaseModelAdapter(ABC):
    """Abstract base class for generative model backends."""

    @abstractmethod
    async def generate_content(
        self,
        prompt: str,
        response_schema: dict[str, Any],
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> ModelResponse:
        """Request a JSON response constrained by a schema hint.

        Args:
            prompt: Full prompt text
            response_schema: JSON-schema-like descriptor of the expected output
            max_output_tokens: Output token ceiling for the call

        Returns:
            The response text and finish reason

        Raises:
            Any transport or provider error; stages downgrade these to
            partial failures.
        """
        pass
