"""
Conversion between ARGO ``juld`` day offsets and calendar dates.

ARGO stores observation times as fractional days since 1950-01-01T00:00:00Z.
A missing or non-finite offset converts to ``None``, the "unknown date"
outcome; it is never replaced by the current time.
"""

from __future__ import annotations

import math
import datetime as dt
from typing import Any, Optional

from .errors import ValidationError

ARGO_EPOCH = dt.datetime(1950, 1, 1, tzinfo=dt.timezone.utc)
_SECONDS_PER_DAY = 86400.0


def to_calendar_date(day_offset: Any) -> Optional[dt.datetime]:
    """Return the UTC datetime for ``day_offset``, or ``None`` when unknown."""
    if day_offset is None or isinstance(day_offset, bool):
        return None
    try:
        days = float(day_offset)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(days):
        return None
    try:
        return ARGO_EPOCH + dt.timedelta(days=days)
    except OverflowError:
        return None


def as_utc(value: dt.date | dt.datetime) -> dt.datetime:
    """Aware UTC datetime for ``value``; naive datetimes and plain dates are read as UTC."""
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value.astimezone(dt.timezone.utc)
    return dt.datetime(value.year, value.month, value.day, tzinfo=dt.timezone.utc)


def to_day_offset(value: dt.date | dt.datetime) -> float:
    """Fractional days between the ARGO epoch and ``value`` (naive means UTC)."""
    return (as_utc(value) - ARGO_EPOCH).total_seconds() / _SECONDS_PER_DAY


def parse_iso_date(text: str, field: str) -> dt.datetime:
    """
    Parse a wire date (``2024-03-01`` or ISO 8601 with optional ``Z``).
    Raises ValidationError naming ``field`` on malformed input.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValidationError(field, "date is empty")
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(field, f"not an ISO 8601 date: {text!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def isoformat_or_none(value: Optional[dt.datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


__all__ = [
    "ARGO_EPOCH",
    "to_calendar_date",
    "as_utc",
    "to_day_offset",
    "parse_iso_date",
    "isoformat_or_none",
]
