"""UTC datetime helpers. Every timestamp in the service is timezone-aware UTC."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as an aware UTC datetime; the default clock of the instance service."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalise a datetime read from the store: naive values are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def hours_since(since: datetime | None, now: datetime) -> float:
    """Elapsed hours from since to now (0 when since is unknown).

    Used for step escalation and timeout checks.
    """
    if since is None:
        return 0.0
    return (now - ensure_utc(since)).total_seconds() / 3600
