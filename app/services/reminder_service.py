# File: app/services/reminder_service.py
"""
Reminder schedule evaluator.

Every tick gathers candidate occurrences from two sources:

* explicit reminder schedules (enabled rows, EMAIL channel)
* the legacy rule for boxes that carry the EMAIL remind type but have no
  schedule rows at all

An occurrence whose fire instant lies in the tick's due window is checked
against the reminder log, then dispatched to the box's pending submitters.
Boxes are isolated from each other: an error on one is logged and the loop
moves on.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.email_service import email_service as default_email_service
from app.core.exceptions import EmailConfigurationError, ReminderScheduleValidationError
from app.core.scheduler import evaluation_lock
from app.core.timeutils import as_utc, format_time_slot, utcnow
from app.crud.document_box import get_legacy_reminder_boxes, reminder_deadline_horizon
from app.crud.reminder_log import format_recipient_summary, list_reminder_logs, reminder_log_exists
from app.crud.reminder_schedule import get_enabled_schedules_for_deadlines
from app.models.document_box import DocumentBox
from app.models.reminder import ReminderChannel, ReminderSchedule
from app.models.submitter import Submitter
from app.services.reminder_dispatch import ReminderDispatch, dispatch_reminder
from app.services.reminder_rules import (
    ScheduleState,
    compute_fire_instant,
    due_window,
    evaluate_schedule_state,
    legacy_fire_instant,
    legacy_trigger_key,
    schedule_trigger_key,
)
from app.services.tick_budget import TickBudget
import logging

logger = logging.getLogger(__name__)


@dataclass
class ReminderCandidate:
    document_box: DocumentBox
    fire_at: datetime
    trigger_key: str
    source: str  # "schedule" | "legacy"
    schedule: Optional[ReminderSchedule] = None

    def describe(self) -> Dict[str, Any]:
        return {
            "document_box_id": self.document_box.id,
            "title": self.document_box.title,
            "schedule_id": self.schedule.id if self.schedule else None,
            "source": self.source,
            "fire_at": self.fire_at.isoformat(),
        }


def reminder_recipients(box: DocumentBox) -> List[Submitter]:
    """Pending submitters with an email; empty for open-submission boxes"""
    if not box.has_designated_submitters:
        return []
    return [s for s in box.submitters if s.is_reminder_target]


def collect_reminder_candidates(db: Session, now: datetime, window) -> List[ReminderCandidate]:
    deadline_from, deadline_to = reminder_deadline_horizon(now, window.start)
    candidates = []

    for schedule in get_enabled_schedules_for_deadlines(db, deadline_from, deadline_to):
        box = schedule.document_box
        if box is None:
            logger.warning(f"[Auto-Reminder] Schedule {schedule.id} has no document box, skipping")
            continue
        if schedule.channel != ReminderChannel.EMAIL:
            logger.debug(f"[Auto-Reminder] Schedule {schedule.id} uses {schedule.channel.value}, not dispatched")
            continue
        try:
            fire_at = compute_fire_instant(box.deadline, schedule.offset_value, schedule.offset_unit, schedule.time_of_day)
        except (ValueError, TypeError) as e:
            logger.warning(f"[Auto-Reminder] Schedule {schedule.id} is inconsistent ({e}), skipping")
            continue
        if window.contains(fire_at):
            candidates.append(ReminderCandidate(box, fire_at, schedule_trigger_key(schedule.id, fire_at), "schedule", schedule))

    for box in get_legacy_reminder_boxes(db, deadline_from, deadline_to):
        fire_at = legacy_fire_instant(box.deadline)
        if window.contains(fire_at):
            candidates.append(ReminderCandidate(box, fire_at, legacy_trigger_key(fire_at), "legacy"))

    return candidates


def process_reminders(
    db: Session,
    now: Optional[datetime] = None,
    email_service=None,
    budget: Optional[TickBudget] = None,
) -> Dict[str, Any]:
    """Send every reminder that is due at `now`. Safe to call repeatedly for the same window.

    Passes are serialized per process so that a manual trigger overlapping a
    tick sees the other pass's reminder logs before it sends.
    """
    with evaluation_lock:
        return _process_reminders(db, now, email_service, budget)


def _process_reminders(db: Session, now, email_service, budget) -> Dict[str, Any]:
    now = as_utc(now or utcnow())
    email_service = email_service or default_email_service
    budget = budget or TickBudget()
    window = due_window(now)
    slot = format_time_slot(now)

    logger.info(f"[Auto-Reminder] Running at {now.isoformat()}, slot {slot}")

    candidates = collect_reminder_candidates(db, now, window)
    logger.info(f"[Auto-Reminder] Found {len(candidates)} reminder occurrences in the due window")

    counts = {
        "candidates": len(candidates),
        "due": 0,
        "sent": 0,
        "already_sent": 0,
        "skipped": 0,
        "failed": 0,
        "deferred": 0,
        "emails_sent": 0,
    }
    details: List[Dict[str, Any]] = []
    config_error: Optional[str] = None

    for candidate in candidates:
        box = candidate.document_box
        detail = candidate.describe()
        details.append(detail)

        if budget.expired():
            counts["deferred"] += 1
            detail.update(state="DEFERRED")
            continue

        try:
            evaluation = evaluate_schedule_state(
                candidate.fire_at,
                now,
                box_closed=box.is_closed,
                already_logged=reminder_log_exists(db, box.id, candidate.trigger_key),
                window=window,
            )
            detail["state"] = evaluation.state.value

            if evaluation.state == ScheduleState.SENT:
                counts["already_sent"] += 1
                continue
            if evaluation.state != ScheduleState.DUE:
                counts["skipped"] += 1
                detail["reason"] = evaluation.reason
                continue

            counts["due"] += 1

            if config_error:
                counts["failed"] += 1
                detail.update(state="FAILED", error=config_error)
                continue

            if not box.has_designated_submitters:
                counts["skipped"] += 1
                detail.update(state=ScheduleState.SKIPPED.value, reason="open submission box has no designated submitters")
                continue

            recipients = reminder_recipients(box)
            if not recipients:
                counts["skipped"] += 1
                detail.update(state=ScheduleState.SKIPPED.value, reason="no pending submitters")
                continue

            outcome = dispatch_reminder(
                db,
                ReminderDispatch(
                    document_box=box,
                    recipients=recipients,
                    now=now,
                    is_auto=True,
                    schedule=candidate.schedule,
                    trigger_key=candidate.trigger_key,
                    fire_at=candidate.fire_at,
                ),
                email_service,
            )
            detail["recipients"] = len(recipients)

            if outcome.success:
                counts["sent"] += 1
                counts["emails_sent"] += outcome.emails_sent
                detail.update(state=ScheduleState.SENT.value, log_id=outcome.log_id, emails_sent=outcome.emails_sent)
            elif outcome.duplicate:
                counts["already_sent"] += 1
                detail.update(state=ScheduleState.SENT.value)
            else:
                counts["failed"] += 1
                detail.update(state="FAILED", error=outcome.error)

        except EmailConfigurationError as e:
            # Nothing can be delivered this tick; keep evaluating so the report is complete
            config_error = e.message
            logger.error(f"[Auto-Reminder] Email configuration error, aborting dispatch: {e.message}")
            counts["failed"] += 1
            detail.update(state="FAILED", error=config_error)
        except Exception as e:
            db.rollback()
            logger.exception(f"[Auto-Reminder] Failed to process box {box.id}: {e}")
            counts["failed"] += 1
            detail.update(state="FAILED", error=str(e))

    message = f"Processed at {slot}. Sent {counts['emails_sent']} emails for {counts['sent']} reminders."
    if config_error:
        message += f" Dispatch aborted: {config_error}"
    logger.info(f"[Auto-Reminder] {message}")

    return {
        "success": config_error is None,
        "message": message,
        "counts": counts,
        "details": details,
    }


def validate_reminder_schedules(schedules: Sequence) -> None:
    if len(schedules) > settings.MAX_REMINDER_COUNT:
        raise ReminderScheduleValidationError(
            f"At most {settings.MAX_REMINDER_COUNT} reminder schedules are allowed per document box",
            details={"count": len(schedules)},
        )


def send_manual_reminder(
    db: Session,
    box: DocumentBox,
    submitter_ids: Optional[Sequence[int]] = None,
    now: Optional[datetime] = None,
    email_service=None,
) -> Dict[str, Any]:
    """Owner-triggered reminder. Logged with is_auto=False and no trigger key."""
    now = as_utc(now or utcnow())
    email_service = email_service or default_email_service

    recipients = reminder_recipients(box)
    if submitter_ids is not None:
        wanted = set(submitter_ids)
        recipients = [s for s in recipients if s.id in wanted]

    if not recipients:
        return {
            "success": False,
            "message": "No pending submitters with an email address to remind",
            "counts": {"recipients": 0, "emails_sent": 0},
            "details": [],
        }

    outcome = dispatch_reminder(
        db,
        ReminderDispatch(document_box=box, recipients=recipients, now=now, is_auto=False),
        email_service,
    )
    return {
        "success": outcome.success,
        "message": "Reminder sent" if outcome.success else f"Reminder failed: {outcome.error}",
        "counts": {"recipients": len(recipients), "emails_sent": outcome.emails_sent},
        "details": [{
            "document_box_id": box.id,
            "log_id": outcome.log_id,
            "failed_recipients": outcome.failed_recipients,
        }],
    }


def reminder_history(db: Session, document_box_id: int, skip: int = 0, limit: int = 50) -> List[Dict[str, Any]]:
    entries = []
    for log in list_reminder_logs(db, document_box_id, skip=skip, limit=limit):
        names = [r.submitter.name for r in log.recipients if r.submitter is not None]
        entries.append({
            "id": log.id,
            "sent_at": as_utc(log.sent_at),
            "channel": log.channel,
            "is_auto": log.is_auto,
            "schedule_id": log.schedule_id,
            "recipient_count": len(log.recipients),
            "recipient_summary": format_recipient_summary(names),
        })
    return entries
