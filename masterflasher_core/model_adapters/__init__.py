"""Model adapters for the generative backend.

The pipeline only needs one capability: send a prompt with a JSON schema hint
and get text back. ``GoogleAdapter`` implements it for Gemini.
"""

from masterflasher_core.model_adapters.base import (
    BaseModelAdapter,
    FinishReason,
    ModelResponse,
)
from masterflasher_core.model_adapters.google import GoogleAdapter

__all__ = [
    "BaseModelAdapter",
    "FinishReason",
    "ModelResponse",
    "GoogleAdapter",
]
