"""Parsing of model response text.

The model is asked for JSON under a schema hint but may still return fenced
JSON, prose, or a response cut off at the token limit. Parsing never raises:
it yields ``Ok(payload)`` or a ``PartialFailure``.
"""

import json
from typing import Any

from masterflasher_core.schemas.results import Ok, Outcome, PartialFailure
from masterflasher_core.utils.logging import get_logger

logger = get_logger(__name__)

_CLOSERS = {"[": "]", "{": "}"}


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    lines = text.split("\n")
    if len(lines) < 2:
        return text.strip("`")
    # Drop the opening fence (``` or ```json) and a closing fence if present
    body = lines[1:-1] if lines[-1].strip() == "```" else lines[1:]
    return "\n".join(body).strip()


def salvage_truncated_json(text: str) -> str | None:
    """Close a JSON document that was cut off mid-stream.

    Keeps everything up to the last complete object and appends the closing
    brackets still open at that point. Returns None when no complete object
    exists.

    Args:
        text: Truncated JSON text

    Returns:
        Repaired JSON text, or None
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    cut: tuple[int, tuple[str, ...]] | None = None

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in ("]", "}"):
            if not stack or _CLOSERS[stack[-1]] != ch:
                return None
            stack.pop()
            if ch == "}" and stack:
                cut = (i, tuple(stack))

    if cut is None:
        return None

    end, still_open = cut
    closing = "".join(_CLOSERS[opener] for opener in reversed(still_open))
    return text[: end + 1] + closing


def parse_model_json(text: str, truncated: bool = False) -> Outcome[Any]:
    """Parse model output into a JSON payload.

    Args:
        text: Raw response text
        truncated: Whether the model hit its output limit; enables salvage

    Returns:
        Ok with the payload, or PartialFailure describing the parse error
    """
    if not text or not text.strip():
        return PartialFailure("empty response")

    body = strip_code_fence(text)
    try:
        return Ok(json.loads(body))
    except json.JSONDecodeError as e:
        error = e

    if truncated:
        repaired = salvage_truncated_json(body)
        if repaired is not None:
            try:
                payload = json.loads(repaired)
            except json.JSONDecodeError:
                pass
            else:
                logger.warning(
                    f"Recovered truncated response ({len(body)} -> {len(repaired)} chars)"
                )
                return Ok(payload)

    logger.debug(f"Unparseable response: {body[:200]}...")
    return PartialFailure(f"invalid JSON: {error}")
