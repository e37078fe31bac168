"""Recursive redaction of sensitive values in arbitrary nested payloads.

Any mapping key whose name contains one of the sensitive fragments
(case-insensitive) has its value replaced by REDACTED, whatever that value
is. Everything else keeps its shape: mappings stay mappings in the same key
order, sequences stay sequences, scalars pass through untouched.

redact() never raises and never mutates its input.
"""

import re
from collections.abc import Mapping
from typing import Any

SENSITIVE_FRAGMENTS: tuple[str, ...] = (
    "password",
    "pass",
    "pwd",
    "token",
    "authorization",
    "auth",
)

REDACTED = "***REDACTED***"
UNSERIALIZABLE = "<<unserializable>>"

# Containers nested deeper than this are replaced by UNSERIALIZABLE
MAX_DEPTH = 64

_SENSITIVE_PATTERN = re.compile(
    "|".join(re.escape(fragment) for fragment in SENSITIVE_FRAGMENTS),
    re.IGNORECASE,
)


def is_sensitive_key(key: Any) -> bool:
    """Return True when a key name matches the sensitive-key pattern."""
    return _SENSITIVE_PATTERN.search(str(key)) is not None


def redact(data: Any) -> Any:
    """Return a redacted copy of `data`.

    Mappings come back as dicts and lists/tuples as lists; other values are
    returned as-is. A key or item whose value cannot be read or traversed
    becomes UNSERIALIZABLE without affecting its siblings, as does any
    container nested more than MAX_DEPTH levels down.
    """
    return _redact(data, 0)


def _redact(data: Any, depth: int) -> Any:
    try:
        if isinstance(data, Mapping | list | tuple) and depth >= MAX_DEPTH:
            return UNSERIALIZABLE
        if isinstance(data, Mapping):
            return _redact_mapping(data, depth)
        if isinstance(data, list | tuple):
            return _redact_sequence(data, depth)
    except Exception:
        return UNSERIALIZABLE
    return data


def _redact_mapping(data: Mapping[Any, Any], depth: int) -> dict[Any, Any]:
    result: dict[Any, Any] = {}
    for key in list(data.keys()):
        try:
            if is_sensitive_key(key):
                result[key] = REDACTED
            else:
                result[key] = _redact(data[key], depth + 1)
        except Exception:
            result[key] = UNSERIALIZABLE
    return result


def _redact_sequence(items: list[Any] | tuple[Any, ...], depth: int) -> list[Any]:
    result: list[Any] = []
    for item in items:
        try:
            result.append(_redact(item, depth + 1))
        except Exception:
            result.append(UNSERIALIZABLE)
    return result
