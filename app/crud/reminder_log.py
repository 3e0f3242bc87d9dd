# File: app/crud/reminder_log.py
from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from app.models.reminder import ReminderLog, ReminderRecipient, ReminderChannel


def reminder_log_exists(db: Session, document_box_id: int, trigger_key: str) -> bool:
    return db.query(ReminderLog.id).filter(
        ReminderLog.document_box_id == document_box_id,
        ReminderLog.trigger_key == trigger_key
    ).first() is not None


def create_reminder_log(
    db: Session,
    *,
    document_box_id: int,
    submitter_ids: Sequence[int],
    sent_at: datetime,
    is_auto: bool,
    channel: ReminderChannel = ReminderChannel.EMAIL,
    schedule_id: Optional[int] = None,
    trigger_key: Optional[str] = None,
    fire_at: Optional[datetime] = None
) -> ReminderLog:
    """Write one log row with its recipient set in a single commit"""
    log = ReminderLog(
        document_box_id=document_box_id,
        schedule_id=schedule_id,
        channel=channel,
        is_auto=is_auto,
        sent_at=sent_at,
        trigger_key=trigger_key,
        fire_at=fire_at,
    )
    log.recipients = [ReminderRecipient(submitter_id=submitter_id) for submitter_id in submitter_ids]
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def list_reminder_logs(db: Session, document_box_id: int, skip: int = 0, limit: int = 50) -> List[ReminderLog]:
    return db.query(ReminderLog).options(
        selectinload(ReminderLog.recipients).selectinload(ReminderRecipient.submitter)
    ).filter(
        ReminderLog.document_box_id == document_box_id
    ).order_by(desc(ReminderLog.sent_at), desc(ReminderLog.id)).offset(skip).limit(limit).all()


def format_recipient_summary(names: Sequence[str]) -> str:
    """'none', 'Alice' or 'Alice and N others'"""
    if not names:
        return "none"
    if len(names) == 1:
        return names[0]
    others = len(names) - 1
    return f"{names[0]} and {others} other{'s' if others > 1 else ''}"
