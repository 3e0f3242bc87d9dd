# File: app/models/document_box.py
from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Enum, Boolean, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class DocumentBoxStatus(enum.Enum):
    OPEN = "OPEN"
    OPEN_SOMEONE = "OPEN_SOMEONE"  # partial submission allowed even past the deadline
    OPEN_RESUME = "OPEN_RESUME"  # manually reopened by the owner
    CLOSED = "CLOSED"
    CLOSED_EXPIRED = "CLOSED_EXPIRED"


CLOSED_STATUSES = (DocumentBoxStatus.CLOSED, DocumentBoxStatus.CLOSED_EXPIRED)

# Manual overrides; never closed automatically
AUTO_CLOSE_EXEMPT_STATUSES = (DocumentBoxStatus.OPEN_SOMEONE, DocumentBoxStatus.OPEN_RESUME)


class RemindType(enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class DocumentBox(BaseModel):
    __tablename__ = "document_boxes"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    status = Column(
        Enum(DocumentBoxStatus, name="documentboxstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=DocumentBoxStatus.OPEN,
        index=True,
    )

    # Nullable for boxes created before the column existed; see has_designated_submitters
    has_submitter = Column(Boolean, nullable=True)

    # Relationships
    owner = relationship("User", back_populates="document_boxes")
    submitters = relationship("Submitter", back_populates="document_box", cascade="all, delete-orphan")
    required_documents = relationship(
        "RequiredDocument",
        back_populates="document_box",
        cascade="all, delete-orphan",
        order_by="RequiredDocument.order",
    )
    remind_types = relationship("DocumentBoxRemindType", back_populates="document_box", cascade="all, delete-orphan")
    reminder_schedules = relationship(
        "ReminderSchedule",
        back_populates="document_box",
        cascade="all, delete-orphan",
        order_by="ReminderSchedule.order",
    )
    reminder_logs = relationship("ReminderLog", back_populates="document_box")

    @property
    def has_designated_submitters(self) -> bool:
        """Three-state reading of has_submitter kept for rows written before the column existed.

        True  -> designated submitters
        False -> open/public submission
        None  -> legacy row, treated as designated submitters
        """
        if self.has_submitter is None:
            return True
        return bool(self.has_submitter)

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    def has_remind_type(self, remind_type: RemindType) -> bool:
        return any(rt.remind_type == remind_type for rt in self.remind_types)


class DocumentBoxRemindType(BaseModel):
    """Legacy per-box channel flag; drives the fixed reminder rule when no schedule rows exist"""
    __tablename__ = "document_box_remind_types"
    __table_args__ = (UniqueConstraint("document_box_id", "remind_type", name="uq_box_remind_type"),)

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    remind_type = Column(
        Enum(RemindType, name="remindtype", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )

    document_box = relationship("DocumentBox", back_populates="remind_types")


class RequiredDocument(BaseModel):
    __tablename__ = "required_documents"

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, default=True, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    document_box = relationship("DocumentBox", back_populates="required_documents")
