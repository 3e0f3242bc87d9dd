# File: app/services/deadline_notification_service.py
"""
Daily deadline notifications for document box owners.

Categories, all judged on local calendar days:
- D-3: OPEN box whose deadline is DEADLINE_NOTICE_DAYS days from today
- D-DAY-OPEN: OPEN box whose deadline is today, once the daily run time has passed
- D-DAY-CLOSED: box whose deadline is today and that was already closed by the
  status transition (deadline between midnight and the run)

The two D-Day categories share one slot per box and day.
"""
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.email_service import email_service as default_email_service
from app.core.exceptions import EmailConfigurationError
from app.core.scheduler import evaluation_lock
from app.core.timeutils import as_utc, local_date, local_day_bounds, to_local, utcnow
from app.crud.deadline_notification import notification_log_exists
from app.crud.document_box import get_boxes_with_deadline_between
from app.models.deadline_notification import DeadlineNotificationCategory
from app.models.document_box import DocumentBox, DocumentBoxStatus
from app.services.reminder_dispatch import dispatch_owner_notification
from app.services.tick_budget import TickBudget
import logging

logger = logging.getLogger(__name__)

D_DAY_CATEGORIES = (DeadlineNotificationCategory.D_DAY_OPEN, DeadlineNotificationCategory.D_DAY_CLOSED)


def classify_deadline_category(box: DocumentBox, now: datetime) -> Optional[DeadlineNotificationCategory]:
    now = as_utc(now)
    today = local_date(now)
    deadline_day = local_date(box.deadline)

    if deadline_day == today + timedelta(days=settings.DEADLINE_NOTICE_DAYS):
        if box.status == DocumentBoxStatus.OPEN:
            return DeadlineNotificationCategory.D_3
        return None

    if deadline_day != today:
        return None

    if box.status == DocumentBoxStatus.OPEN:
        local_now = to_local(now)
        run_minutes = settings.daily_notification_hour * 60 + settings.daily_notification_minute
        if local_now.hour * 60 + local_now.minute >= run_minutes:
            return DeadlineNotificationCategory.D_DAY_OPEN
        return None

    if box.status == DocumentBoxStatus.CLOSED_EXPIRED:
        return DeadlineNotificationCategory.D_DAY_CLOSED
    return None


def _idempotency_categories(category: DeadlineNotificationCategory):
    if category in D_DAY_CATEGORIES:
        return D_DAY_CATEGORIES
    return (category,)


def process_deadline_notifications(
    db: Session,
    now: Optional[datetime] = None,
    email_service=None,
    budget: Optional[TickBudget] = None,
) -> Dict[str, Any]:
    """Notify owners about boxes closing in N days or today. At most one mail per box, category and day."""
    with evaluation_lock:
        return _process_deadline_notifications(db, now, email_service, budget)


def _process_deadline_notifications(db: Session, now, email_service, budget) -> Dict[str, Any]:
    now = as_utc(now or utcnow())
    email_service = email_service or default_email_service
    budget = budget or TickBudget()
    today = local_date(now)

    logger.info(f"[Deadline-Notification] Running at {now.isoformat()} for {today.isoformat()}")

    notice_start, notice_end = local_day_bounds(today + timedelta(days=settings.DEADLINE_NOTICE_DAYS))
    today_start, today_end = local_day_bounds(today)
    boxes = get_boxes_with_deadline_between(db, notice_start, notice_end, [DocumentBoxStatus.OPEN])
    boxes += get_boxes_with_deadline_between(
        db, today_start, today_end, [DocumentBoxStatus.OPEN, DocumentBoxStatus.CLOSED_EXPIRED]
    )
    logger.info(f"[Deadline-Notification] Found {len(boxes)} candidate boxes")

    counts = {
        "candidates": len(boxes),
        "sent": 0,
        "already_sent": 0,
        "opted_out": 0,
        "skipped": 0,
        "failed": 0,
        "deferred": 0,
    }
    details: List[Dict[str, Any]] = []
    config_error: Optional[str] = None

    for box in boxes:
        category = classify_deadline_category(box, now)
        if category is None:
            counts["skipped"] += 1
            continue

        detail = {
            "document_box_id": box.id,
            "title": box.title,
            "category": category.value,
            "owner_email": box.owner.email if box.owner else "",
        }
        details.append(detail)

        if budget.expired():
            counts["deferred"] += 1
            detail["state"] = "DEFERRED"
            continue

        if box.owner is not None and not box.owner.deadline_notifications_enabled:
            counts["opted_out"] += 1
            detail["state"] = "OPTED_OUT"
            continue

        if notification_log_exists(db, box.id, _idempotency_categories(category), today):
            counts["already_sent"] += 1
            detail["state"] = "ALREADY_SENT"
            continue

        if config_error:
            counts["failed"] += 1
            detail.update(state="FAILED", error=config_error)
            continue

        try:
            outcome = dispatch_owner_notification(db, box, category, today, now, email_service)
        except EmailConfigurationError as e:
            config_error = e.message
            logger.error(f"[Deadline-Notification] Email configuration error, aborting dispatch: {e.message}")
            counts["failed"] += 1
            detail.update(state="FAILED", error=config_error)
            continue
        except Exception as e:
            db.rollback()
            logger.exception(f"[Deadline-Notification] Failed to notify owner of box {box.id}: {e}")
            counts["failed"] += 1
            detail.update(state="FAILED", error=str(e))
            continue

        if outcome.success:
            counts["sent"] += 1
            detail.update(state="SENT", log_id=outcome.log_id)
            if settings.NOTIFICATION_SEND_DELAY_SECONDS > 0:
                time.sleep(settings.NOTIFICATION_SEND_DELAY_SECONDS)
        elif outcome.duplicate:
            counts["already_sent"] += 1
            detail["state"] = "ALREADY_SENT"
        else:
            counts["failed"] += 1
            detail.update(state="FAILED", error=outcome.error)

    message = f"Processed at {now.isoformat()}. Sent {counts['sent']}/{len(details)} notifications."
    if config_error:
        message += f" Dispatch aborted: {config_error}"
    logger.info(f"[Deadline-Notification] {message}")

    return {
        "success": config_error is None,
        "message": message,
        "counts": counts,
        "details": details,
    }
