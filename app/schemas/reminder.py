# File: app/schemas/reminder.py
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from app.models.reminder import ReminderChannel, ReminderTimeUnit
from app.services.reminder_rules import SEND_TIME_OPTIONS, TIME_VALUE_RANGE


class ReminderScheduleInput(BaseModel):
    offset_value: int = 3
    offset_unit: ReminderTimeUnit = ReminderTimeUnit.DAY
    time_of_day: str = "09:00"
    channel: ReminderChannel = ReminderChannel.EMAIL
    greeting_html: Optional[str] = None
    footer_html: Optional[str] = None

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, v: str) -> str:
        if v not in SEND_TIME_OPTIONS:
            raise ValueError("time_of_day must be a half-hour value between 00:00 and 23:30")
        return v

    @model_validator(mode="after")
    def validate_offset_range(self):
        low, high = TIME_VALUE_RANGE[self.offset_unit]
        if not low <= self.offset_value <= high:
            raise ValueError(f"offset_value for {self.offset_unit.value} must be between {low} and {high}")
        return self


class ReminderScheduleUpdate(BaseModel):
    """Replace schedules when given, otherwise only toggle the existing ones"""
    schedules: Optional[List[ReminderScheduleInput]] = None
    reminder_enabled: bool = True


class ReminderScheduleToggle(BaseModel):
    enabled: bool


class ReminderSchedule(BaseModel):
    id: int
    document_box_id: int
    offset_value: int
    offset_unit: ReminderTimeUnit
    time_of_day: str
    channel: ReminderChannel
    order: int
    is_enabled: bool
    greeting_html: Optional[str] = None
    footer_html: Optional[str] = None

    class Config:
        from_attributes = True


class ManualReminderRequest(BaseModel):
    # None targets every pending submitter of the box
    submitter_ids: Optional[List[int]] = Field(default=None)


class ReminderLogEntry(BaseModel):
    id: int
    sent_at: datetime
    channel: ReminderChannel
    is_auto: bool
    schedule_id: Optional[int] = None
    recipient_count: int
    recipient_summary: str
