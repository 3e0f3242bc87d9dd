# File: app/api/v1/endpoints/cron.py
"""Manual triggers for the scheduled jobs. Each runs the same evaluator the scheduler runs, under the same per-process lock."""
import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.api.deps import verify_cron_auth
from app.schemas.cron import CronResult
from app.services.deadline_notification_service import process_deadline_notifications
from app.services.reminder_service import process_reminders
from app.services.status_transition import process_status_transition

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_cron_auth)])


def _error_response(job: str, error: Exception) -> JSONResponse:
    logger.exception(f"[Cron] {job} failed: {error}")
    return JSONResponse(status_code=500, content={"success": False, "error": str(error)})


@router.get("/reminders", response_model=CronResult)
def trigger_reminders(db: Session = Depends(get_db)):
    """Send reminders that are due now"""
    try:
        return process_reminders(db)
    except Exception as e:
        return _error_response("Reminder job", e)


@router.get("/status-transition", response_model=CronResult)
def trigger_status_transition(db: Session = Depends(get_db)):
    """Close OPEN document boxes whose deadline has passed"""
    try:
        return process_status_transition(db)
    except Exception as e:
        return _error_response("Status transition job", e)


@router.get("/deadline-notification", response_model=CronResult)
def trigger_deadline_notification(db: Session = Depends(get_db)):
    """Notify owners about boxes closing in a few days or today"""
    try:
        return process_deadline_notifications(db)
    except Exception as e:
        return _error_response("Deadline notification job", e)
