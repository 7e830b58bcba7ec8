"""Masking of project tokens and encoded payloads in DEBUG logs.

Flattened elements carry the project token (``properties.token`` for
events, ``$token`` for profile updates) and requests carry the whole
payload again as base64 in ``data``.  Neither belongs in a log line.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

_MASK = "<redacted>"

_TOKEN_KEYS: frozenset[str] = frozenset({"token", "$token"})
_ENCODED_PARAMS: frozenset[str] = frozenset({"data"})


def _shorten(value: Any, max_string: int) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value


def _redact_element(values: Mapping[str, Any], max_string: int) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in values.items():
        if key in _TOKEN_KEYS:
            redacted[key] = _MASK
        elif key == "properties" and isinstance(value, Mapping):
            # Event property bag: custom values are kept, the token is not.
            redacted[key] = {
                k: _MASK if k in _TOKEN_KEYS else _shorten(v, max_string) for k, v in value.items()
            }
        else:
            redacted[key] = _shorten(value, max_string)
    return redacted


def redact_payload(payload: Any, *, max_string: int = 256) -> Any:
    """Copy of a flattened element, or a list of them, with tokens masked."""
    if isinstance(payload, Mapping):
        return _redact_element(payload, max_string)
    if isinstance(payload, list):
        return [redact_payload(item, max_string=max_string) for item in payload]
    return _shorten(payload, max_string)


def redact_params(params: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Query or form parameters with the encoded payload replaced by its size."""
    return {
        key: f"<base64:{len(value)}>" if key in _ENCODED_PARAMS else value for key, value in params
    }
