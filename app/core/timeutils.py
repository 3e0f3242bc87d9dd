# File: app/core/timeutils.py
"""Timezone helpers.

Instants are stored and compared in UTC. Calendar days and "HH:MM" times of day
are interpreted in the configured local zone (settings.TIMEZONE).
"""
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values (e.g. read back from SQLite) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_zone() -> tzinfo:
    return settings.tzinfo


def to_local(value: datetime) -> datetime:
    return as_utc(value).astimezone(local_zone())


def local_date(value: datetime) -> date:
    return to_local(value).date()


def parse_time_of_day(value: str) -> time:
    hour, minute = value.split(":")
    return time(hour=int(hour), minute=int(minute))


def at_local_time(day: date, time_of_day: str) -> datetime:
    """Instant (UTC) of `time_of_day` on local calendar `day`"""
    local = datetime.combine(day, parse_time_of_day(time_of_day), tzinfo=local_zone())
    return local.astimezone(timezone.utc)


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC bounds [start, end) of a local calendar day"""
    start = datetime.combine(day, time.min, tzinfo=local_zone())
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=local_zone())
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_time_slot(value: datetime, interval_minutes: Optional[int] = None) -> str:
    """Local "HH:MM" of `value` floored to the tick interval"""
    interval = interval_minutes or settings.TICK_INTERVAL_MINUTES
    local = to_local(value)
    minutes = (local.hour * 60 + local.minute) // interval * interval
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
