"""Response validation."""

from masterflasher_core.validation.validate import (
    ResponseShape,
    SchemaViolationError,
    validate,
    validate_facts_response,
    validate_flashcards_response,
)

__all__ = [
    "ResponseShape",
    "SchemaViolationError",
    "validate",
    "validate_facts_response",
    "validate_flashcards_response",
]
