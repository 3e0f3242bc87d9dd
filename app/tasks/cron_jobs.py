# File: app/tasks/cron_jobs.py
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from sqlalchemy.orm import Session
from app.db.database import SessionLocal
from app.services.deadline_notification_service import process_deadline_notifications
from app.services.reminder_service import process_reminders
from app.services.status_transition import process_status_transition
from app.services.tick_budget import TickBudget

logger = logging.getLogger(__name__)


def run_periodic_tick(
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    email_service=None,
) -> Dict[str, Any]:
    """Half-hourly tick: reminders first, then the status transition.

    Reminders look at pre-transition state. A failure in one step is logged
    and does not stop the other.
    """
    start_time = time.time()
    budget = TickBudget()
    results: Dict[str, Any] = {}

    db = session_factory()
    try:
        try:
            results["reminders"] = process_reminders(db, now=now, email_service=email_service, budget=budget)
            logger.info(
                f"[Cron] Reminder job completed: {results['reminders']['counts']['emails_sent']} emails sent"
            )
        except Exception as e:
            db.rollback()
            logger.exception(f"[Cron] Reminder job failed: {e}")
            results["reminders"] = {"success": False, "message": str(e)}

        try:
            results["status_transition"] = process_status_transition(db, now=now)
            logger.info(
                f"[Cron] Status transition job completed: "
                f"{results['status_transition']['counts']['transitioned']} boxes transitioned"
            )
        except Exception as e:
            logger.exception(f"[Cron] Status transition job failed: {e}")
            results["status_transition"] = {"success": False, "message": str(e)}
    finally:
        db.close()

    logger.info(f"[Cron] Periodic tick finished in {(time.time() - start_time) * 1000:.0f}ms")
    return results


def run_daily_tick(
    now: Optional[datetime] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    email_service=None,
) -> Dict[str, Any]:
    """Daily tick: deadline notifications for box owners"""
    start_time = time.time()
    db = session_factory()
    try:
        result = process_deadline_notifications(db, now=now, email_service=email_service, budget=TickBudget())
        logger.info(f"[Cron] Deadline notification job completed: {result['counts']['sent']} notifications sent")
    except Exception as e:
        db.rollback()
        logger.exception(f"[Cron] Deadline notification job failed: {e}")
        result = {"success": False, "message": str(e)}
    finally:
        db.close()

    logger.info(f"[Cron] Daily tick finished in {(time.time() - start_time) * 1000:.0f}ms")
    return result
