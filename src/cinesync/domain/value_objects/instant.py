"""Instant parsing - the single conversion used wherever a timestamp is read.

Hey future me - timestamps reach us in every shape imaginable: tz-aware datetimes from
PostgreSQL, NAIVE datetimes from SQLite (it drops tzinfo!), epoch seconds from Trakt's token
endpoint, epoch milliseconds inside our JSON documents, and ISO strings with a trailing "Z"
from the Trakt API. parse_instant() folds all of them into a UTC-aware datetime or None.
None means "never" - callers treat it as "no lock", "never synced", "already expired".
"""

import math
from datetime import UTC, date, datetime, time
from typing import Any

# Epoch values above this are milliseconds (1e11 seconds is the year 5138)
_MILLISECONDS_THRESHOLD = 1e11


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


def parse_instant(value: Any) -> datetime | None:
    """Convert a stored or remote timestamp into a UTC-aware datetime.

    Args:
        value: datetime (naive is treated as UTC), date, epoch number (seconds or
            milliseconds), ISO-8601 string, or None

    Returns:
        UTC-aware datetime, or None if the value is absent or unparsable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)

    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value <= 0:
            return None
        seconds = value / 1000 if value > _MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return parse_instant(datetime.fromisoformat(text))
        except ValueError:
            return None

    return None


def to_epoch_ms(value: Any) -> int | None:
    """Convert any supported timestamp into epoch milliseconds (JSON document format)."""
    instant = parse_instant(value)
    if instant is None:
        return None
    return int(instant.timestamp() * 1000)
