"""
Datetime helpers for timezone-aware timestamps.

All engine timestamps are UTC. ``utc_now`` is the default clock for every
operation that accepts an optional ``now`` argument, so tests can either
pass ``now`` explicitly or patch this function.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Treat a naive datetime as UTC.

    SQLite returns naive datetimes even for ``DateTime(timezone=True)``
    columns, so values read back from the database go through here before
    being compared with ``utc_now()``.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def resolve_now(now: Optional[datetime]) -> datetime:
    """Return ``now`` normalized to an aware datetime, or the current time."""
    if now is None:
        return utc_now()
    return ensure_timezone_aware(now)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds elapsed from ``start`` to ``end`` (never negative)."""
    delta = ensure_timezone_aware(end) - ensure_timezone_aware(start)
    return max(0, int(delta.total_seconds()))
