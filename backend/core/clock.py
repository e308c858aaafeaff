"""Wall-clock source.

Everything that needs "now" calls clock.utcnow() through the module so a
single patch point controls time.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive UTC datetimes; make them timezone-aware."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_between(later: datetime, earlier: datetime) -> int:
    """Whole seconds from earlier to later, floored (negative when later < earlier)."""
    return int((as_utc(later) - as_utc(earlier)).total_seconds() // 1)
