"""Lockdown session schemas."""
from datetime import datetime
from enum import Enum
from typing import Optional

from core.clock import as_utc
from schemas.base import ApiModel


class SessionStatus(str, Enum):
    ACTIVE = "active"
    LOCKED = "locked"
    COMPLETED = "completed"


LIVE_STATUSES = (SessionStatus.ACTIVE.value, SessionStatus.LOCKED.value)


class CheckInType(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class Session(ApiModel):
    id: str
    status: SessionStatus
    start_time: datetime
    end_time: Optional[datetime] = None
    lockdown_minutes: int
    time_remaining: Optional[int] = None
    time_ahead: Optional[int] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "Session":
        return cls(
            id=doc["id"],
            status=doc["status"],
            start_time=as_utc(doc["start_time"]),
            end_time=as_utc(doc.get("end_time")),
            lockdown_minutes=doc["lockdown_minutes"],
            time_remaining=doc.get("time_remaining"),
            time_ahead=doc.get("time_ahead"),
        )


class CheckIn(ApiModel):
    id: str
    type: CheckInType
    server_time: datetime
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "CheckIn":
        return cls(
            id=doc["id"],
            type=doc["type"],
            server_time=as_utc(doc["server_time"]),
            created_at=as_utc(doc["created_at"]),
        )


class UserStats(ApiModel):
    id: str  # device id
    total_time_saved: int = 0
    current_streak: int = 0
    last_relapse: Optional[datetime] = None


class CurrentSessionResponse(ApiModel):
    session: Optional[Session] = None
    user: UserStats


class CheckInResponse(ApiModel):
    check_in: CheckIn
    session: Session
