"""Reporting schemas: derived, read-only views."""
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from schemas.base import ApiModel
from schemas.session import SessionStatus


class LockdownNowResponse(ApiModel):
    is_locked: bool
    status: SessionStatus
    time_remaining: Optional[int] = None
    time_ahead: Optional[int] = None
    end_time: Optional[datetime] = None
    server_time: datetime


class SessionReport(ApiModel):
    check_ins_during_lockdown: int = 0
    check_outs_during_lockdown: int = 0
    time_on_page_during_lockdown: int = 0  # seconds


class StatisticsSummary(ApiModel):
    total_time_saved: int = 0
    current_streak: int = 0
    last_relapse: Optional[datetime] = None
    total_sessions: int = 0
    completed_sessions: int = 0
    total_cheats: int = 0
    total_harms: int = 0
    follow_ups_answered: int = 0
    session_report: SessionReport


class DayStatus(str, Enum):
    CLEAN = "clean"
    RELAPSED = "relapsed"
    NO_DATA = "no_data"


class TimeTableEntry(ApiModel):
    date: date
    status: DayStatus
    sessions_started: int = 0
    cheats: int = 0
    harms: int = 0
    check_ins: int = 0
    check_outs: int = 0
    time_on_page: int = 0  # seconds


class StatisticsDetailsResponse(ApiModel):
    start_date: date
    end_date: date
    entries: List[TimeTableEntry]


class PomodoroSummary(ApiModel):
    total_completed: int = 0
    total_work_sessions: int = 0
    total_short_breaks: int = 0
    total_long_breaks: int = 0
    total_time_seconds: int = 0
    today_count: int = 0
