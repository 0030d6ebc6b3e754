"""Time utilities for the domain layer."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def ensure_tz_aware(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware (UTC if naive)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_timestamp(dt: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string for storage."""
    return ensure_tz_aware(dt).astimezone(timezone.utc).isoformat()


def from_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp; empty or missing values yield None."""
    if not value:
        return None
    return ensure_tz_aware(datetime.fromisoformat(value))
