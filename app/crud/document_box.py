# File: app/crud/document_box.py
from datetime import datetime, timedelta
from typing import Iterable, List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from app.models.document_box import DocumentBox, DocumentBoxStatus, DocumentBoxRemindType, RemindType
from app.models.reminder import ReminderSchedule


def get_document_box(db: Session, document_box_id: int) -> Optional[DocumentBox]:
    return db.query(DocumentBox).filter(DocumentBox.id == document_box_id).first()


def get_expired_open_boxes(db: Session, now: datetime) -> List[DocumentBox]:
    """OPEN boxes whose deadline has passed. Other statuses never match."""
    return db.query(DocumentBox).filter(
        DocumentBox.status == DocumentBoxStatus.OPEN,
        DocumentBox.deadline < now
    ).order_by(DocumentBox.id).all()


def bulk_update_status(
    db: Session,
    document_box_ids: Iterable[int],
    status: DocumentBoxStatus,
    only_from: Optional[DocumentBoxStatus] = None,
) -> int:
    """Single UPDATE over the given ids; returns affected row count. Caller commits."""
    ids = list(document_box_ids)
    if not ids:
        return 0

    stmt = update(DocumentBox).where(DocumentBox.id.in_(ids))
    if only_from is not None:
        stmt = stmt.where(DocumentBox.status == only_from)
    result = db.execute(stmt.values(status=status).execution_options(synchronize_session=False))
    return result.rowcount


def get_boxes_with_deadline_between(
    db: Session,
    start: datetime,
    end: datetime,
    statuses: Iterable[DocumentBoxStatus],
) -> List[DocumentBox]:
    """Boxes with start <= deadline < end in one of the statuses, owners and submitters loaded"""
    return db.query(DocumentBox).options(
        selectinload(DocumentBox.owner),
        selectinload(DocumentBox.submitters),
    ).filter(
        DocumentBox.status.in_(list(statuses)),
        DocumentBox.deadline >= start,
        DocumentBox.deadline < end
    ).order_by(DocumentBox.deadline, DocumentBox.id).all()


def get_legacy_reminder_boxes(db: Session, deadline_from: datetime, deadline_to: datetime) -> List[DocumentBox]:
    """Boxes flagged with the legacy EMAIL remind type and no reminder schedule rows at all"""
    has_email_flag = db.query(DocumentBoxRemindType.id).filter(
        DocumentBoxRemindType.document_box_id == DocumentBox.id,
        DocumentBoxRemindType.remind_type == RemindType.EMAIL
    ).exists()
    has_schedules = db.query(ReminderSchedule.id).filter(
        ReminderSchedule.document_box_id == DocumentBox.id
    ).exists()

    return db.query(DocumentBox).options(
        selectinload(DocumentBox.submitters),
        selectinload(DocumentBox.required_documents),
    ).filter(
        has_email_flag,
        ~has_schedules,
        DocumentBox.deadline > deadline_from,
        DocumentBox.deadline <= deadline_to
    ).order_by(DocumentBox.id).all()


def reminder_deadline_horizon(now: datetime, window_start: datetime):
    """Deadline range that can hold a fire instant inside the current window.

    A fire instant is always before its deadline and at most 30 days (or 4 weeks)
    ahead of it, plus one day for time-of-day on the target date.
    """
    return window_start, now + timedelta(days=32)
