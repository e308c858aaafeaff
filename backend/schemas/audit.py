"""Audit event schemas."""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    # Lockdown state machine
    SESSION_CREATED = "session_created"
    SESSION_UNLOCKED = "session_unlocked"
    SESSION_COMPLETED = "session_completed"
    # Action log
    CHEAT_LOGGED = "cheat_logged"
    HARM_LOGGED = "harm_logged"
    FOLLOW_UP_SUBMITTED = "follow_up_submitted"
    # Settings
    SETTINGS_UPDATED = "settings_updated"
    # Anti-tamper
    TIME_VALIDATION_FAILED = "time_validation_failed"
    # Pomodoro
    TIMER_COMPLETED = "timer_completed"


class AuditEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: AuditEventType
    device_id: Optional[str] = None
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)

    def to_doc(self) -> dict:
        """Storage form: the enum is stored by value."""
        return {**self.model_dump(), "event_type": self.event_type.value}
