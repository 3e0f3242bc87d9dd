# File: app/models/user.py
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from app.models.base import BaseModel


class User(BaseModel):
    """Document box owner. Authentication itself is delegated to the hosted auth provider."""
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    auth_user_id = Column(String(255), unique=True, index=True, nullable=True)

    # Owners may opt out of the daily deadline notification mails
    deadline_notifications_enabled = Column(Boolean, default=True, nullable=False)

    document_boxes = relationship("DocumentBox", back_populates="owner")
