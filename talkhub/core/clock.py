"""Clock helpers — UTC normalization for timestamps crossing the DB boundary.

Invariants:
    - Every timestamp handed to core logic is timezone-aware UTC
    - Naive values (SQLite drops tzinfo on round-trip) are interpreted as UTC
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_schedule(day: date, at: time, tz_name: str = "UTC") -> datetime:
    """Interpret a submitted date + wall-clock time in tz_name, return UTC."""
    local = datetime.combine(day, at.replace(tzinfo=None), tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc)


def split_schedule(starts_at: datetime, tz_name: str = "UTC") -> tuple[date, str]:
    """Inverse of combine_schedule: (local date, "HH:MM") for responses."""
    local = ensure_utc(starts_at).astimezone(ZoneInfo(tz_name))
    return local.date(), local.strftime("%H:%M")
