from __future__ import annotations

import json
import re
from typing import Any

from memfs.schemas import ValueKind

ABSENT_TEXT = "undefined"

# ASCII digits only; "inf", "nan" and other scripts' digits stay strings.
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.[0-9]*|\.[0-9]+|[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INFINITY_RE = re.compile(r"[+-]?Infinity")


def decode_content(text: str) -> tuple[ValueKind, Any]:
    """Infer the kind of raw file content.

    JSON objects/arrays win, then a number spanning the whole trimmed text,
    and everything else is kept verbatim as a string.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, (dict, list)):
        return ValueKind.OBJECT, parsed

    number = parse_number(text)
    if number is not None:
        return ValueKind.NUMBER, number

    return ValueKind.STRING, text


def parse_number(text: str) -> int | float | None:
    stripped = text.strip()
    if _INTEGER_RE.fullmatch(stripped):
        return int(stripped)
    if _DECIMAL_RE.fullmatch(stripped) or _INFINITY_RE.fullmatch(stripped):
        return float(stripped)
    return None


def encode_value(kind: ValueKind, value: Any) -> str:
    match kind:
        case ValueKind.OBJECT:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        case ValueKind.NUMBER | ValueKind.BOOLEAN:
            return json.dumps(value)
        case ValueKind.STRING:
            return value
        case ValueKind.ABSENT:
            return ABSENT_TEXT
    raise ValueError(f"Unknown value kind: {kind}")


def coerce_text(text: str, kind: ValueKind) -> Any:
    """Parse user-supplied text as a value of an explicit kind."""
    if kind == ValueKind.STRING:
        return text
    if kind == ValueKind.ABSENT:
        return None
    if kind == ValueKind.NUMBER:
        number = parse_number(text)
        if number is None:
            raise ValueError(f"not a number: {text!r}")
        return number
    if kind == ValueKind.BOOLEAN:
        normalized = text.strip().lower()
        if normalized not in {"true", "false"}:
            raise ValueError(f"not a boolean: {text!r}")
        return normalized == "true"
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"not a JSON object or array: {exc}") from exc
    if not isinstance(parsed, (dict, list)):
        raise ValueError("not a JSON object or array")
    return parsed
