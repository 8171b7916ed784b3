"""Shape validation for model-derived responses.

These checks run after the stages have already normalized what they could
(local ids, forced card type, tag coercion). Anything still wrong here is a
contract breach, so it raises ``SchemaViolationError`` instead of being
downgraded to an empty result. Oversized arrays are the one repair: they are
truncated with a warning.
"""

from enum import Enum
from typing import Any

from masterflasher_core.schemas.cards import CARD_TYPE_BASIC
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

MAX_FACTS = 1000
MAX_CARDS = 200


class SchemaViolationError(ValueError):
    """A response failed required-field checks after normalization."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{message} (at {path})" if path else message)


class ResponseShape(str, Enum):
    """Response kinds the validator knows."""

    FACTS = "facts"
    FLASHCARDS = "flashcards"


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _require_root(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaViolationError("Root must be an object")
    return data


def _truncate(data: dict[str, Any], key: str, limit: int) -> None:
    items = data[key]
    if len(items) > limit:
        logger.warning(f"{key} array has {len(items)} entries, truncating to {limit}")
        data[key] = items[:limit]


def validate_facts_response(data: Any, max_facts: int = MAX_FACTS) -> dict[str, Any]:
    """Validate a facts-shaped response.

    Args:
        data: Parsed response, ``{"facts": [{"id", "fact"}, ...]}``
        max_facts: Hard cap; longer arrays are truncated

    Returns:
        The same object (possibly with a truncated facts array)

    Raises:
        SchemaViolationError: On a non-object root, non-array ``facts``, or a
            fact without a non-empty string ``id`` and ``fact``
    """
    root = _require_root(data)
    if not isinstance(root.get("facts"), list):
        raise SchemaViolationError('"facts" must be an array', "facts")

    _truncate(root, "facts", max_facts)

    for i, fact in enumerate(root["facts"]):
        if not isinstance(fact, dict):
            raise SchemaViolationError("Fact must be an object", f"facts[{i}]")
        if not _non_empty_string(fact.get("id")):
            raise SchemaViolationError('Missing or invalid "id"', f"facts[{i}].id")
        if not _non_empty_string(fact.get("fact")):
            raise SchemaViolationError('Missing or invalid "fact"', f"facts[{i}].fact")

    return root


def validate_flashcards_response(
    data: Any, max_cards: int = MAX_CARDS
) -> dict[str, Any]:
    """Validate a flashcards-shaped response.

    An empty ``cards`` array is valid: it means the source had nothing worth
    carding.

    Args:
        data: Parsed response, ``{"deck": str, "cards": [...]}``
        max_cards: Hard cap; longer arrays are truncated

    Returns:
        The same object (possibly with a truncated cards array)

    Raises:
        SchemaViolationError: On a non-object root, non-array ``cards``, or a
            card with the wrong type, a blank side, or non-array tags
    """
    root = _require_root(data)
    if not isinstance(root.get("cards"), list):
        raise SchemaViolationError('"cards" must be an array', "cards")

    _truncate(root, "cards", max_cards)

    for i, card in enumerate(root["cards"]):
        if not isinstance(card, dict):
            raise SchemaViolationError("Card must be an object", f"cards[{i}]")
        if card.get("type") != CARD_TYPE_BASIC:
            raise SchemaViolationError(
                f'Card type must be "{CARD_TYPE_BASIC}"', f"cards[{i}].type"
            )
        if not _non_empty_string(card.get("front")):
            raise SchemaViolationError('Missing or empty "front"', f"cards[{i}].front")
        if not _non_empty_string(card.get("back")):
            raise SchemaViolationError('Missing or empty "back"', f"cards[{i}].back")
        tags = card.get("tags")
        if tags is not None and not isinstance(tags, list):
            raise SchemaViolationError('"tags" must be an array', f"cards[{i}].tags")

    return root


def validate(data: Any, shape: ResponseShape | str, **limits: int) -> dict[str, Any]:
    """Validate ``data`` against the named response shape."""
    shape = ResponseShape(shape)
    if shape is ResponseShape.FACTS:
        return validate_facts_response(data, **limits)
    return validate_flashcards_response(data, **limits)
