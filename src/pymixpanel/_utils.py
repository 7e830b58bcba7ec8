"""Encoding and date helpers used to build Mixpanel payloads."""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_TRUE_WORDS = frozenset({"TRUE", "YES", "Y"})
_FALSE_WORDS = frozenset({"FALSE", "NO", "N"})


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_base64(text: str | None) -> str | None:
    """Base64-encode the UTF-8 bytes of *text*."""
    if text is None:
        return None
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def to_datetime(epoch_seconds: int) -> datetime:
    """Convert a number of seconds since 1970-01-01 into a UTC datetime.

    Non-positive values map to ``datetime.min`` (UTC).
    """
    if epoch_seconds <= 0:
        return datetime.min.replace(tzinfo=UTC)
    return datetime.fromtimestamp(epoch_seconds, tz=UTC)


def to_epoch_time(value: datetime) -> int:
    """Convert a datetime into a number of seconds since 1970-01-01.

    Dates at or before the epoch map to ``0``.  Fractional seconds are
    rounded half to even.
    """
    moment = _as_utc(value)
    if moment <= _EPOCH:
        return 0
    return round((moment - _EPOCH).total_seconds())


def to_mixpanel_date(value: datetime) -> str:
    """Format *value* the way Mixpanel parses dates: ``YYYY-MM-DDThh:mm:ss``."""
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def parse_bool(value: Any, default: bool = False) -> bool:
    """Leniently interpret an API answer or flag as a boolean.

    Accepts booleans, ``0``/``1``/``-1``, yes/no words and integers;
    anything else yields *default*.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value not in (0, -1)

    text = str(value).strip()
    if not text:
        return default
    upper = text.upper()
    if upper in _TRUE_WORDS:
        return True
    if upper in _FALSE_WORDS:
        return False
    try:
        return int(text) not in (0, -1)
    except ValueError:
        return default
