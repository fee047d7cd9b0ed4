"""Time utilities. Timestamps are stored as naive UTC datetimes."""

from datetime import date, datetime, time, timezone
from typing import Optional


def now_utc() -> datetime:
    """Return timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def now_utc_naive() -> datetime:
    """Return naive datetime representing current UTC time."""
    return now_utc().replace(tzinfo=None)


def to_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert a datetime to naive UTC (assumes UTC if already naive)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp (trailing "Z" allowed) into naive UTC."""
    if not value:
        return None
    return to_utc_naive(datetime.fromisoformat(value.rstrip("Z")))


def parse_iso_end(value: Optional[str]) -> Optional[datetime]:
    """Like parse_iso, but a bare date means the last instant of that day."""
    if not value:
        return None
    try:
        day = date.fromisoformat(value)
    except ValueError:
        return parse_iso(value)
    return datetime.combine(day, time.max)
