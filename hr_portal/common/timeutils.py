"""Clock helpers: UTC for storage, the office timezone for calendar days."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from hr_portal.config import Settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_local(settings: Settings) -> datetime:
    return utcnow().astimezone(ZoneInfo(settings.TIMEZONE))


def today_local(settings: Settings) -> date:
    return now_local(settings).date()


def to_local(settings: Settings, value: datetime) -> datetime:
    return as_utc(value).astimezone(ZoneInfo(settings.TIMEZONE))


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from backends that drop tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_working_day(from_date: date) -> date:
    """First day after *from_date* that is not a Saturday or Sunday."""
    candidate = from_date + timedelta(days=1)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate
