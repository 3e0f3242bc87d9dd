# File: app/crud/deadline_notification.py
from datetime import date, datetime
from typing import Iterable
from sqlalchemy.orm import Session

from app.models.deadline_notification import DeadlineNotificationLog, DeadlineNotificationCategory


def notification_log_exists(
    db: Session,
    document_box_id: int,
    categories: Iterable[DeadlineNotificationCategory],
    notification_date: date
) -> bool:
    """Whether any of the categories was already sent for the box on that local date"""
    return db.query(DeadlineNotificationLog.id).filter(
        DeadlineNotificationLog.document_box_id == document_box_id,
        DeadlineNotificationLog.category.in_(list(categories)),
        DeadlineNotificationLog.notification_date == notification_date
    ).first() is not None


def create_notification_log(
    db: Session,
    *,
    document_box_id: int,
    category: DeadlineNotificationCategory,
    notification_date: date,
    recipient_email: str,
    sent_at: datetime
) -> DeadlineNotificationLog:
    log = DeadlineNotificationLog(
        document_box_id=document_box_id,
        category=category,
        notification_date=notification_date,
        recipient_email=recipient_email,
        sent_at=sent_at,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log
