from .base import BaseModel
from .user import User
from .document_box import (
    DocumentBox, DocumentBoxStatus, DocumentBoxRemindType, RemindType, RequiredDocument,
    CLOSED_STATUSES, AUTO_CLOSE_EXEMPT_STATUSES,
)
from .submitter import Submitter, SubmitterStatus
from .reminder import ReminderSchedule, ReminderLog, ReminderRecipient, ReminderChannel, ReminderTimeUnit
from .deadline_notification import DeadlineNotificationLog, DeadlineNotificationCategory

__all__ = [
    "BaseModel", "User", "DocumentBox", "DocumentBoxStatus", "DocumentBoxRemindType", "RemindType",
    "RequiredDocument", "CLOSED_STATUSES", "AUTO_CLOSE_EXEMPT_STATUSES", "Submitter", "SubmitterStatus",
    "ReminderSchedule", "ReminderLog", "ReminderRecipient", "ReminderChannel", "ReminderTimeUnit",
    "DeadlineNotificationLog", "DeadlineNotificationCategory",
]
