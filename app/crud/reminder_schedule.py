# File: app/crud/reminder_schedule.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, contains_eager, selectinload

from app.models.document_box import DocumentBox
from app.models.reminder import ReminderSchedule
from app.schemas.reminder import ReminderScheduleInput


def list_reminder_schedules(db: Session, document_box_id: int) -> List[ReminderSchedule]:
    return db.query(ReminderSchedule).filter(
        ReminderSchedule.document_box_id == document_box_id
    ).order_by(ReminderSchedule.order).all()


def get_enabled_schedules_for_deadlines(
    db: Session,
    deadline_from: datetime,
    deadline_to: datetime
) -> List[ReminderSchedule]:
    """Enabled schedules whose box deadline lies in (deadline_from, deadline_to]"""
    return db.query(ReminderSchedule).join(
        DocumentBox, ReminderSchedule.document_box_id == DocumentBox.id
    ).options(
        contains_eager(ReminderSchedule.document_box).options(
            selectinload(DocumentBox.submitters),
            selectinload(DocumentBox.required_documents),
        )
    ).filter(
        ReminderSchedule.is_enabled == True,
        DocumentBox.deadline > deadline_from,
        DocumentBox.deadline <= deadline_to
    ).order_by(DocumentBox.id, ReminderSchedule.order).all()


def set_reminder_schedules_enabled(db: Session, document_box_id: int, enabled: bool) -> int:
    """Toggle every schedule of a box while keeping its configuration"""
    count = db.query(ReminderSchedule).filter(
        ReminderSchedule.document_box_id == document_box_id
    ).update({ReminderSchedule.is_enabled: enabled}, synchronize_session=False)
    db.commit()
    return count


def replace_reminder_schedules(
    db: Session,
    document_box_id: int,
    schedules: List[ReminderScheduleInput],
    is_enabled: bool = True
) -> List[ReminderSchedule]:
    """Delete the existing schedules of a box and recreate them in the given order"""
    db.query(ReminderSchedule).filter(
        ReminderSchedule.document_box_id == document_box_id
    ).delete(synchronize_session=False)

    created = []
    for index, schedule in enumerate(schedules):
        row = ReminderSchedule(
            document_box_id=document_box_id,
            offset_value=schedule.offset_value,
            offset_unit=schedule.offset_unit,
            time_of_day=schedule.time_of_day,
            channel=schedule.channel,
            order=index,
            is_enabled=is_enabled,
            greeting_html=schedule.greeting_html,
            footer_html=schedule.footer_html,
        )
        db.add(row)
        created.append(row)

    db.commit()
    for row in created:
        db.refresh(row)
    return created


def handle_reminder_schedule_update(
    db: Session,
    document_box_id: int,
    schedules: Optional[List[ReminderScheduleInput]],
    reminder_enabled: bool
) -> List[ReminderSchedule]:
    """Replace when schedules are given, otherwise only toggle the existing ones"""
    if schedules:
        return replace_reminder_schedules(db, document_box_id, schedules, reminder_enabled)

    set_reminder_schedules_enabled(db, document_box_id, reminder_enabled)
    return list_reminder_schedules(db, document_box_id)
