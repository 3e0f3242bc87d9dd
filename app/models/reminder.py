# File: app/models/reminder.py
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ReminderChannel(enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class ReminderTimeUnit(enum.Enum):
    DAY = "DAY"
    WEEK = "WEEK"


class ReminderSchedule(BaseModel):
    __tablename__ = "reminder_schedules"

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    offset_value = Column(Integer, nullable=False)
    offset_unit = Column(
        Enum(ReminderTimeUnit, name="remindertimeunit", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=ReminderTimeUnit.DAY,
    )
    # "HH:MM", half-hour aligned
    time_of_day = Column(String(5), nullable=False, default="09:00")
    channel = Column(
        Enum(ReminderChannel, name="reminderchannel", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=ReminderChannel.EMAIL,
    )
    order = Column(Integer, default=0, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)

    # Optional custom email parts
    greeting_html = Column(Text, nullable=True)
    footer_html = Column(Text, nullable=True)

    document_box = relationship("DocumentBox", back_populates="reminder_schedules")


class ReminderLog(BaseModel):
    """Append-only record of a reminder send.

    trigger_key identifies the automatic trigger (schedule or legacy rule plus
    its fire instant); manual sends leave it empty.
    """
    __tablename__ = "reminder_logs"
    __table_args__ = (UniqueConstraint("document_box_id", "trigger_key", name="uq_reminder_log_trigger"),)

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("reminder_schedules.id", ondelete="SET NULL"), nullable=True)
    channel = Column(
        Enum(ReminderChannel, name="reminderchannel", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=ReminderChannel.EMAIL,
    )
    is_auto = Column(Boolean, default=True, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)
    trigger_key = Column(String(120), nullable=True)
    fire_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    document_box = relationship("DocumentBox", back_populates="reminder_logs")
    schedule = relationship("ReminderSchedule")
    recipients = relationship("ReminderRecipient", back_populates="reminder_log", cascade="all, delete-orphan")


class ReminderRecipient(BaseModel):
    __tablename__ = "reminder_recipients"

    reminder_log_id = Column(Integer, ForeignKey("reminder_logs.id", ondelete="CASCADE"), nullable=False, index=True)
    submitter_id = Column(Integer, ForeignKey("submitters.id", ondelete="CASCADE"), nullable=False)

    reminder_log = relationship("ReminderLog", back_populates="recipients")
    submitter = relationship("Submitter")
