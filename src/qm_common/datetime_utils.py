"""UTC datetime utilities."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

# Anything returning an aware "now"; injected so tests can drive time.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def parse_datetime(value: datetime | str | None) -> datetime | None:
    """Accept a datetime or an ISO-8601 string (as sent over the wire)."""
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def milliseconds(ms: int) -> timedelta:
    return timedelta(milliseconds=ms)
