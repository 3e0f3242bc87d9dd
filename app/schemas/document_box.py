# File: app/schemas/document_box.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from app.models.document_box import DocumentBoxStatus


class DocumentBoxStatusUpdate(BaseModel):
    status: DocumentBoxStatus
    # Required when reopening a fresh OPEN cycle
    deadline: Optional[datetime] = None


class DocumentBoxStatusOut(BaseModel):
    id: int
    title: str
    status: DocumentBoxStatus
    deadline: datetime

    class Config:
        from_attributes = True
