"""Custom exception hierarchy for Monitabits.

Every error carries the machine code and HTTP status it surfaces as.
"""
from typing import Any, Dict, List, Optional


class MonitabitsError(Exception):
    """Base error."""
    def __init__(self, message: str, code: str = "MONITABITS_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class TimeValidationFailed(MonitabitsError):
    """Client clock missing, malformed or too far from server time."""
    def __init__(self, message: str = "Time validation failed"):
        super().__init__(message, code="TIME_VALIDATION_FAILED", status_code=400)


class Unauthorized(MonitabitsError):
    """Missing or malformed device id."""
    def __init__(self, message: str = "Device ID is required"):
        super().__init__(message, code="UNAUTHORIZED", status_code=401)


class InvalidAction(MonitabitsError):
    """Action attempted in the wrong session state."""
    def __init__(self, message: str = "Action not allowed in current state"):
        super().__init__(message, code="INVALID_ACTION", status_code=400)


class NoPendingFollowUp(MonitabitsError):
    def __init__(self, message: str = "No pending follow-up question found"):
        super().__init__(message, code="NO_PENDING_FOLLOWUP", status_code=400)


class ValidationFailed(MonitabitsError):
    """Request body/query rejected before reaching any service."""
    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        self.errors = errors or []
        super().__init__(message, code="VALIDATION_FAILED", status_code=400)


class InvalidTimerState(MonitabitsError):
    """Pomodoro command not valid for the timer's current status."""
    def __init__(self, message: str = "Timer command not allowed in current state"):
        super().__init__(message, code="INVALID_TIMER_STATE", status_code=400)
