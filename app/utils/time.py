"""Time utilities (UTC)."""

from datetime import datetime, timezone, tzinfo


def now_utc() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def ensure_utc(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Attach a timezone to naive values and convert to UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 string with offset."""
    return ensure_utc(dt).isoformat()

