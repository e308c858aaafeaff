"""Pomodoro timer schemas."""
from datetime import datetime
from enum import Enum
from typing import Optional

from core.clock import as_utc
from schemas.base import ApiModel, RequestModel


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class TimerType(str, Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


class Timer(ApiModel):
    id: str
    status: TimerStatus
    type: TimerType
    duration_seconds: int
    remaining_seconds: int
    started_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict, remaining_seconds: Optional[int] = None) -> "Timer":
        return cls(
            id=doc["id"],
            status=doc["status"],
            type=doc["type"],
            duration_seconds=doc["duration_seconds"],
            remaining_seconds=doc["remaining_seconds"] if remaining_seconds is None else remaining_seconds,
            started_at=as_utc(doc.get("started_at")),
            paused_at=as_utc(doc.get("paused_at")),
        )


class TimerResponse(ApiModel):
    timer: Timer


class StartTimerRequest(RequestModel):
    type: TimerType
