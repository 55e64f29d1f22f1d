"""Text helpers for loosely-structured HEMIS employee records."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

_SEPARATORS_RE = re.compile(r"[_\-]+")
_WHITESPACE_RE = re.compile(r"\s+")

# Aliases accepted in chat commands, on top of the configured type names
EMPLOYEE_TYPE_ALIASES: dict[str, str] = {
    "staff": "staff",
    "staffs": "staff",
    "teacher": "teacher",
    "teachers": "teacher",
    "employee": "employee",
    "employees": "employee",
}

IDENTITY_ID_KEYS = ("id", "employee_id", "uuid")
IDENTITY_LOGIN_KEYS = ("login", "username", "user_login")
IDENTITY_FINGERPRINT_LENGTH = 80


def normalize_text(value: Any) -> str:
    """Lower-case, turn `_`/`-` runs into spaces and collapse whitespace."""
    text = "" if value is None else str(value)
    text = _SEPARATORS_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def pick(obj: Any, keys: Iterable[str]) -> Any:
    """
    Return the first value under `keys` that is neither None nor "".

    Args:
        obj: Record to read (anything that is not a Mapping yields "")
        keys: Candidate field names, in priority order

    Returns:
        The first non-empty value, or "" when no candidate is set
    """
    if not isinstance(obj, Mapping):
        return ""
    for key in keys:
        value = obj.get(key)
        if value is not None and value != "":
            return value
    return ""


def to_text_or_name(value: Any) -> str:
    """Render a scalar as text, or a nested object by its name-like field."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    if isinstance(value, Mapping):
        return str(pick(value, ("name", "title", "full_name", "short_name")))
    return ""


def resolve_employee_type(raw: Any, configured_types: list[str]) -> str:
    """
    Map user input such as "Teachers" or "staff-s" onto a configured type.

    Args:
        raw: Type name as typed by the user (or stored on a record)
        configured_types: EMPLOYEE_TYPES from settings

    Returns:
        Canonical type name, or "" if it cannot be resolved
    """
    token = normalize_text(raw).replace(" ", "")
    if not token:
        return ""
    if token in EMPLOYEE_TYPE_ALIASES:
        return EMPLOYEE_TYPE_ALIASES[token]
    return token if token in configured_types else ""


def parse_positive_int(raw: Any, fallback: int = 1) -> int:
    """Parse a leading integer like JS parseInt; non-positive or junk gives `fallback`."""
    match = re.match(r"\s*([+-]?\d+)", "" if raw is None else str(raw))
    if not match:
        return fallback
    n = int(match.group(1))
    return n if n > 0 else fallback


def compact_json(value: Any) -> str:
    """Serialize without whitespace, keeping non-ASCII characters as-is."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _is_blank_key(value: Any) -> bool:
    """Falsy candidates (0, False, NaN) fall through to the next key source."""
    if value is None or value == "" or value is False:
        return True
    return isinstance(value, (int, float)) and (value == 0 or math.isnan(value))


def employee_key(record: Any) -> Any:
    """
    Derive the deduplication key for an employee record.

    Tries an id-like field, then a login-like field, then falls back to the
    first 80 characters of the record's JSON. The fallback is a weak
    fingerprint: records without id/login may collide or fail to dedupe.
    Existing caches depend on it, so keep it as is.
    """
    key = pick(record, IDENTITY_ID_KEYS)
    if _is_blank_key(key):
        key = pick(record, IDENTITY_LOGIN_KEYS)
    if _is_blank_key(key):
        key = compact_json(record)[:IDENTITY_FINGERPRINT_LENGTH]
    # Unhashable values (nested id objects) fall back to their JSON form
    if isinstance(key, (dict, list)):
        key = compact_json(key)
    return key


def flatten_text(value: Any) -> list[str]:
    """Collect every string/number/boolean leaf of a nested structure."""
    parts: list[str] = []

    def walk(v: Any) -> None:
        if v is None:
            return
        if isinstance(v, bool):
            parts.append("true" if v else "false")
        elif isinstance(v, (str, int, float)):
            parts.append(str(v))
        elif isinstance(v, (list, tuple)):
            for item in v:
                walk(item)
        elif isinstance(v, Mapping):
            for item in v.values():
                walk(item)

    walk(value)
    return parts


def employee_search_text(record: Any) -> str:
    """Normalized haystack used by /search."""
    return normalize_text(" ".join(flatten_text(record)))
