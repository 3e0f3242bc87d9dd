"""
Exception hierarchy for the reminder and deadline scheduler.

Provider and configuration errors are raised by the email service and handled
by the dispatch layer; validation errors are raised by owner-facing operations
and mapped to HTTP 400 by the API layer.
"""
from typing import Any, Dict, Optional


class SchedulerError(Exception):
    """Base exception for scheduler operations"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class EmailConfigurationError(SchedulerError):
    """Provider credentials are missing or unusable"""
    pass


class EmailProviderError(SchedulerError):
    """The provider rejected or failed a whole batch call"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        super().__init__(message, details)


class DispatchTimeoutError(SchedulerError):
    """A per-box send did not finish within the dispatch timeout"""
    pass


class InvalidStatusTransitionError(SchedulerError):
    """An owner requested a status change that is not allowed"""
    pass


class ReminderScheduleValidationError(SchedulerError):
    """Reminder schedule input violates the configured limits"""
    pass
