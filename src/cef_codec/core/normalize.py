"""Severity and timestamp normalization."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from dateutil import parser as date_parser

from .errors import InvalidTimestamp

DEFAULT_SEVERITY = "6"
MIN_SEVERITY = 0
MAX_SEVERITY = 10


def is_valid_severity(value: str) -> bool:
    """True for whole numbers in 0..10 (``"5.0"`` counts, ``"5.5"`` does not)."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        return False
    return f % 1 == 0 and MIN_SEVERITY <= f <= MAX_SEVERITY


def normalize_severity(value: str, default: str = DEFAULT_SEVERITY) -> str:
    """Return the integer string form of `value`, or of `default` when invalid."""
    if not is_valid_severity(value):
        value = default
    try:
        return str(int(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_SEVERITY


def _ensure_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def normalize_timestamp(value: Any) -> datetime:
    """Convert a datetime, date/time string or epoch number to a UTC datetime.

    All-digit strings are epoch milliseconds (how CEF producers send ``rt``);
    bare numbers are epoch seconds.
    """
    if isinstance(value, datetime):
        return _ensure_utc(value)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidTimestamp(f"Failed to normalize time {value!r}") from exc

    if isinstance(value, str):
        text = value.strip()
        try:
            if text.isdigit():
                return datetime.fromtimestamp(int(text) / 1000.0, tz=UTC)
            return _ensure_utc(date_parser.parse(text))
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidTimestamp(f"Failed to normalize time {value!r}") from exc

    raise InvalidTimestamp(f"Failed to normalize time {value!r}")


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. ``2024-01-02T03:04:05.000Z``."""
    return _ensure_utc(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")
