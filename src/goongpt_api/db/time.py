# src/goongpt_api/db/time.py
"""Time utilities shared by stores and services."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def from_timestamp(seconds: float) -> datetime:
    """Return a timezone-aware UTC datetime for an epoch timestamp."""
    return datetime.fromtimestamp(seconds, UTC)


def to_iso(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with millisecond precision."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
