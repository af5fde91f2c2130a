"""Helpers for reading JSON out of free-text model replies."""
import json
import re
from typing import Any

from bizscan.errors import ReplyParseError

_FENCE_OPEN = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Remove markdown code fences (```json ... ```) around a reply."""
    if not text:
        return ""
    if "```" not in text:
        return text.strip()
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def parse_json_reply(text: str) -> Any:
    """
    Parse a model reply as JSON after stripping markdown fencing.

    Raises:
        ReplyParseError: If the cleaned reply is not valid JSON.
    """
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as e:
        raise ReplyParseError(f"Reply is not valid JSON: {e}") from e


def parse_json_object(text: str) -> dict:
    """Like parse_json_reply, but the reply must be a JSON object."""
    data = parse_json_reply(text)
    if not isinstance(data, dict):
        raise ReplyParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def as_text(value: Any) -> str:
    """Coerce a loosely-typed JSON value into a stripped string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()
