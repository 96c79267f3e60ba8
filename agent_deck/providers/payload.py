"""Helpers for probing loosely-typed JSON payloads."""

from __future__ import annotations

import json
from typing import Any

JsonRecord = dict[str, Any]


def as_record(value: object) -> JsonRecord | None:
    return value if isinstance(value, dict) else None


def as_list(value: object) -> list[Any]:
    return value if isinstance(value, list) else []


def as_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def as_int(value: object) -> int | None:
    # bool is an int subclass; a flag is never a counter.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def pick(record: JsonRecord | None, *keys: str) -> Any:
    """Return the first present, non-None value among ``keys``."""
    if not record:
        return None
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def pick_str(record: JsonRecord | None, *keys: str) -> str | None:
    for key in keys:
        text = as_str(pick(record, key))
        if text:
            return text
    return None


def pick_int(record: JsonRecord | None, *keys: str) -> int | None:
    for key in keys:
        number = as_int(pick(record, key))
        if number is not None:
            return number
    return None


def parse_payload_json(payload_json: str) -> JsonRecord:
    """Decode a JSON object; anything else becomes an empty dict."""
    try:
        data = json.loads(payload_json)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def error_text(value: object, fallback: str) -> str:
    """Human-readable message from an error string or ``{"message": ...}`` object."""
    text = as_str(value)
    if text and text.strip():
        return text.strip()
    record = as_record(value)
    if record:
        message = pick_str(record, "message", "detail", "type")
        if message and message.strip():
            return message.strip()
        return json.dumps(record, ensure_ascii=False)
    return fallback


def normalize_content(content: object) -> str:
    """Join string / ``[{"text": ...}]`` content shapes into one string."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for item in as_list(content):
        if isinstance(item, str):
            parts.append(item)
            continue
        text = as_str(as_record(item) and item.get("text"))
        if text:
            parts.append(text)
    return "".join(parts)


def truncate(text: str, limit: int) -> str:
    """Collapse to one line and cut at ``limit`` characters with an ellipsis."""
    single = " ".join(text.split())
    if limit <= 0 or len(single) <= limit:
        return single
    return single[: max(1, limit - 1)].rstrip() + "…"
