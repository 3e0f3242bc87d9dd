# File: app/services/reminder_rules.py
"""
Reminder timing rules.

A reminder schedule fires once per deadline cycle at
    fire_at = (local date of deadline - offset) at time_of_day (local zone)

A tick at time T treats a schedule as DUE when fire_at falls in the window
(T - tick_interval, T]. Consecutive ticks therefore cover every instant exactly
once. REMINDER_RETRY_WINDOWS extends the lower bound by whole tick intervals so
a send that failed transiently is picked up again by the following tick; the
reminder log check keeps the widened window from sending twice.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from app.core.config import settings
from app.core.timeutils import as_utc, at_local_time, local_date
from app.models.reminder import ReminderTimeUnit

# 30-minute aligned choices offered to owners
SEND_TIME_OPTIONS = [f"{hour:02d}:{minute:02d}" for hour in range(24) for minute in (0, 30)]

TIME_VALUE_RANGE = {
    ReminderTimeUnit.DAY: (1, 30),
    ReminderTimeUnit.WEEK: (1, 4),
}

DEFAULT_REMINDER_SCHEDULE = {
    "offset_value": 3,
    "offset_unit": ReminderTimeUnit.DAY,
    "time_of_day": "09:00",
}


class ScheduleState(Enum):
    SCHEDULED = "SCHEDULED"
    DUE = "DUE"
    SENT = "SENT"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class DueWindow:
    """Half-open window (start, end] of fire instants handled by one tick"""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        instant = as_utc(instant)
        return self.start < instant <= self.end


@dataclass(frozen=True)
class ScheduleEvaluation:
    state: ScheduleState
    fire_at: datetime
    reason: Optional[str] = None


def offset_delta(offset_value: int, offset_unit: ReminderTimeUnit) -> timedelta:
    if offset_unit == ReminderTimeUnit.WEEK:
        return timedelta(weeks=offset_value)
    return timedelta(days=offset_value)


def compute_fire_instant(deadline: datetime, offset_value: int, offset_unit: ReminderTimeUnit, time_of_day: str) -> datetime:
    """Fire instant (UTC) of a schedule for the given deadline"""
    target_day = local_date(deadline) - offset_delta(offset_value, offset_unit)
    return at_local_time(target_day, time_of_day)


def legacy_fire_instant(deadline: datetime) -> datetime:
    """Fixed legacy rule: LEGACY_REMINDER_DAYS before the deadline at LEGACY_REMINDER_TIME"""
    return compute_fire_instant(
        deadline,
        settings.LEGACY_REMINDER_DAYS,
        ReminderTimeUnit.DAY,
        settings.LEGACY_REMINDER_TIME,
    )


def due_window(now: datetime, retry_windows: Optional[int] = None) -> DueWindow:
    """Window of fire instants a tick at `now` is responsible for"""
    if retry_windows is None:
        retry_windows = settings.REMINDER_RETRY_WINDOWS
    end = as_utc(now)
    start = end - settings.tick_interval * (1 + max(retry_windows, 0))
    return DueWindow(start=start, end=end)


def schedule_trigger_key(schedule_id: int, fire_at: datetime) -> str:
    return f"schedule:{schedule_id}:{as_utc(fire_at).strftime('%Y%m%dT%H%MZ')}"


def legacy_trigger_key(fire_at: datetime) -> str:
    return f"legacy:{as_utc(fire_at).strftime('%Y%m%dT%H%MZ')}"


def evaluate_schedule_state(
    fire_at: datetime,
    now: datetime,
    box_closed: bool,
    already_logged: bool,
    window: Optional[DueWindow] = None,
) -> ScheduleEvaluation:
    """Place one schedule occurrence in SCHEDULED / DUE / SENT / SKIPPED"""
    fire_at = as_utc(fire_at)
    window = window or due_window(now)

    if already_logged:
        return ScheduleEvaluation(ScheduleState.SENT, fire_at)
    if box_closed:
        return ScheduleEvaluation(ScheduleState.SKIPPED, fire_at, "document box is closed")
    if fire_at > window.end:
        return ScheduleEvaluation(ScheduleState.SCHEDULED, fire_at)
    if window.contains(fire_at):
        return ScheduleEvaluation(ScheduleState.DUE, fire_at)
    return ScheduleEvaluation(ScheduleState.SKIPPED, fire_at, "fire window has passed")


def days_left(deadline: datetime, now: datetime) -> int:
    """Whole local calendar days between today and the deadline day"""
    return (local_date(deadline) - local_date(now)).days
