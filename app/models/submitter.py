# File: app/models/submitter.py
from sqlalchemy import Column, String, Integer, ForeignKey, Enum
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class SubmitterStatus(enum.Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    REJECTED = "REJECTED"


class Submitter(BaseModel):
    __tablename__ = "submitters"

    document_box_id = Column(Integer, ForeignKey("document_boxes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    status = Column(
        Enum(SubmitterStatus, name="submitterstatus", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=SubmitterStatus.PENDING,
    )

    document_box = relationship("DocumentBox", back_populates="submitters")

    @property
    def is_reminder_target(self) -> bool:
        """Only pending submitters with an email address receive reminders"""
        return self.status == SubmitterStatus.PENDING and bool((self.email or "").strip())
