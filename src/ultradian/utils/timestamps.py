"""Timestamp conversion helpers with microsecond precision."""

import math

from datetime import UTC, datetime, timedelta

from ultradian.constants import MICROSECONDS_PER_SECOND

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_ONE_MICROSECOND = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Return the current UTC instant."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be UTC (that is how they are
    stored in SQLite).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_epoch_seconds(value: datetime) -> float:
    """Fractional seconds since the Unix epoch, keeping microseconds."""
    delta = ensure_utc(value) - EPOCH
    whole = delta.days * 86400 + delta.seconds
    return whole + delta.microseconds / MICROSECONDS_PER_SECOND


def from_epoch_seconds(seconds: float) -> datetime:
    """Build a UTC datetime from fractional epoch seconds, rounded to microseconds."""
    whole = math.floor(seconds)
    micros = round((seconds - whole) * MICROSECONDS_PER_SECOND)
    return EPOCH + timedelta(seconds=whole, microseconds=micros)


def microseconds_between(start: datetime, end: datetime) -> int:
    """Signed whole microseconds from start to end."""
    return (ensure_utc(end) - ensure_utc(start)) // _ONE_MICROSECOND


def parse_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant into aware UTC.

    Raises:
        ValueError: If the string is not a valid ISO-8601 timestamp
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(
            f"Invalid timestamp: '{value}'. Expected ISO-8601 "
            "(e.g., 2025-03-01T14:30:00.250000+00:00)"
        ) from None
    return ensure_utc(parsed)


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the day containing `value`."""
    return ensure_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)
