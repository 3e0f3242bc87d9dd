# File: app/api/v1/endpoints/document_boxes.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.api.deps import get_document_box_or_404
from app.core.exceptions import InvalidStatusTransitionError, ReminderScheduleValidationError
from app.crud import reminder_schedule as crud_schedule
from app.models.document_box import DocumentBox
from app.schemas.cron import CronResult
from app.schemas.document_box import DocumentBoxStatusOut, DocumentBoxStatusUpdate
from app.schemas.reminder import (
    ManualReminderRequest,
    ReminderLogEntry,
    ReminderSchedule,
    ReminderScheduleToggle,
    ReminderScheduleUpdate,
)
from app.services.reminder_service import reminder_history, send_manual_reminder, validate_reminder_schedules
from app.services.status_transition import change_document_box_status

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{document_box_id}/reminder-schedules", response_model=List[ReminderSchedule])
def get_reminder_schedules(
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    """Reminder schedules of a document box in their configured order"""
    return crud_schedule.list_reminder_schedules(db, box.id)


@router.put("/{document_box_id}/reminder-schedules", response_model=List[ReminderSchedule])
def update_reminder_schedules(
    payload: ReminderScheduleUpdate,
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    """Replace the schedules, or only toggle them when no schedules are sent.

    An empty `schedules` list is treated like a missing one: existing
    schedules stay in place and only `reminder_enabled` is applied. To stop
    reminders for a box, disable its schedules.
    """
    try:
        if payload.schedules:
            validate_reminder_schedules(payload.schedules)
    except ReminderScheduleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    schedules = crud_schedule.handle_reminder_schedule_update(
        db, box.id, payload.schedules, payload.reminder_enabled
    )
    logger.info(f"Reminder schedules of document box {box.id} updated ({len(schedules)} schedules)")
    return schedules


@router.patch("/{document_box_id}/reminder-schedules/enabled", response_model=List[ReminderSchedule])
def toggle_reminder_schedules(
    payload: ReminderScheduleToggle,
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    crud_schedule.set_reminder_schedules_enabled(db, box.id, payload.enabled)
    return crud_schedule.list_reminder_schedules(db, box.id)


@router.post("/{document_box_id}/reminders/send", response_model=CronResult)
def send_reminder_now(
    payload: ManualReminderRequest,
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    """Send a reminder right away to pending submitters"""
    result = send_manual_reminder(db, box, submitter_ids=payload.submitter_ids)
    if not result["success"] and result["counts"]["recipients"] == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["message"])
    return result


@router.get("/{document_box_id}/reminder-logs", response_model=List[ReminderLogEntry])
def get_reminder_logs(
    skip: int = 0,
    limit: int = 50,
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    return reminder_history(db, box.id, skip=skip, limit=limit)


@router.patch("/{document_box_id}/status", response_model=DocumentBoxStatusOut)
def update_document_box_status(
    payload: DocumentBoxStatusUpdate,
    box: DocumentBox = Depends(get_document_box_or_404),
    db: Session = Depends(get_db),
):
    """Owner status change. CLOSED_EXPIRED is only ever set by the scheduler."""
    try:
        return change_document_box_status(db, box, payload.status, deadline=payload.deadline)
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
