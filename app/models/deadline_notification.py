# File: app/models/deadline_notification.py
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Date, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class DeadlineNotificationCategory(enum.Enum):
    D_3 = "D-3"
    D_DAY_OPEN = "D-DAY-OPEN"
    D_DAY_CLOSED = "D-DAY-CLOSED"


class DeadlineNotificationLog(BaseModel):
    __tablename__ = "deadline_notification_logs"
    __table_args__ = (
        UniqueConstraint("document_box_id", "category", "notification_date", name="uq_deadline_notification_per_day"),
    )

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(
        Enum(DeadlineNotificationCategory, name="deadlinenotificationcategory", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    # Local calendar date of the run
    notification_date = Column(Date, nullable=False)
    recipient_email = Column(String(255), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    document_box = relationship("DocumentBox")
