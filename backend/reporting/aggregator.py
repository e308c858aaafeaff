"""Statistics: read-only aggregation over sessions, actions and check-ins.

Rows are loaded per device and bucketed in Python. Date boundaries are UTC.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core import clock
from core.database import find_safe
from core.exceptions import ValidationFailed
from lockdown.sessions import get_user_stats, resolve_current_session
from schemas.action import ActionType
from schemas.session import CheckInType, SessionStatus
from schemas.statistics import (
    DayStatus,
    LockdownNowResponse,
    PomodoroSummary,
    SessionReport,
    StatisticsDetailsResponse,
    StatisticsSummary,
    TimeTableEntry,
)
from schemas.timer import TimerType

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366
_ROW_LIMIT = 10000

Window = Tuple[datetime, datetime]


async def _rows(collection: str, device_id: str, sort_field: str) -> List[Dict[str, Any]]:
    return await find_safe(
        collection, {"device_id": device_id}, limit=_ROW_LIMIT, sort_field=sort_field, sort_dir=1,
    )


def _lockdown_windows(sessions: Iterable[Dict[str, Any]]) -> List[Window]:
    windows = []
    for s in sessions:
        start, end = clock.as_utc(s.get("start_time")), clock.as_utc(s.get("end_time"))
        if start is not None and end is not None:
            windows.append((start, end))
    return windows


def _in_lockdown(at: datetime, windows: List[Window]) -> bool:
    return any(start <= at < end for start, end in windows)


def _visits(check_ins: Iterable[Dict[str, Any]]) -> List[Tuple[datetime, int]]:
    """Pair each check-in with the next check-out: [(check_in_time, seconds)].

    A check-in followed by another check-in is abandoned.
    """
    visits = []
    opened: Optional[datetime] = None
    for c in check_ins:
        at = clock.as_utc(c["server_time"])
        if c["type"] == CheckInType.CHECK_IN.value:
            opened = at
        elif opened is not None:
            visits.append((opened, max(0, clock.seconds_between(at, opened))))
            opened = None
    return visits


def build_session_report(sessions: List[Dict[str, Any]], check_ins: List[Dict[str, Any]]) -> SessionReport:
    windows = _lockdown_windows(sessions)
    report = SessionReport()
    for c in check_ins:
        if not _in_lockdown(clock.as_utc(c["server_time"]), windows):
            continue
        if c["type"] == CheckInType.CHECK_IN.value:
            report.check_ins_during_lockdown += 1
        else:
            report.check_outs_during_lockdown += 1
    report.time_on_page_during_lockdown = sum(
        seconds for opened, seconds in _visits(check_ins) if _in_lockdown(opened, windows)
    )
    return report


async def lockdown_now(device_id: str) -> LockdownNowResponse:
    session = await resolve_current_session(device_id)
    return LockdownNowResponse(
        is_locked=session.status == SessionStatus.LOCKED,
        status=session.status,
        time_remaining=session.time_remaining,
        time_ahead=session.time_ahead,
        end_time=session.end_time,
        server_time=clock.utcnow(),
    )


async def summary(device_id: str) -> StatisticsSummary:
    user = await get_user_stats(device_id)
    sessions = await _rows("sessions", device_id, "start_time")
    actions = await _rows("actions", device_id, "server_time")
    follow_ups = await _rows("follow_ups", device_id, "created_at")
    check_ins = await _rows("check_ins", device_id, "server_time")

    return StatisticsSummary(
        total_time_saved=user.total_time_saved,
        current_streak=user.current_streak,
        last_relapse=user.last_relapse,
        total_sessions=len(sessions),
        completed_sessions=sum(1 for s in sessions if s["status"] == SessionStatus.COMPLETED.value),
        total_cheats=sum(1 for a in actions if a["type"] == ActionType.CHEAT.value),
        total_harms=sum(1 for a in actions if a["type"] == ActionType.HARM.value),
        follow_ups_answered=len(follow_ups),
        session_report=build_session_report(sessions, check_ins),
    )


def validate_range(start_date: date, end_date: date) -> None:
    errors = []
    if start_date > end_date:
        errors.append({"property": "startDate", "message": "startDate must not be after endDate"})
    elif (end_date - start_date).days + 1 > MAX_RANGE_DAYS:
        errors.append({
            "property": "endDate",
            "message": f"Date range must not exceed {MAX_RANGE_DAYS} days",
        })
    if errors:
        raise ValidationFailed("Invalid date range", errors=errors)


async def details(device_id: str, start_date: date, end_date: date) -> StatisticsDetailsResponse:
    """Per-day time table for the inclusive UTC date range."""
    validate_range(start_date, end_date)

    days: Dict[date, TimeTableEntry] = {}
    cursor = start_date
    while cursor <= end_date:
        days[cursor] = TimeTableEntry(date=cursor, status=DayStatus.NO_DATA)
        cursor += timedelta(days=1)

    def bucket(at: Optional[datetime]) -> Optional[TimeTableEntry]:
        if at is None:
            return None
        return days.get(clock.as_utc(at).date())

    for s in await _rows("sessions", device_id, "start_time"):
        entry = bucket(s.get("start_time"))
        if entry:
            entry.sessions_started += 1

    for a in await _rows("actions", device_id, "server_time"):
        entry = bucket(a.get("server_time"))
        if entry is None:
            continue
        if a["type"] == ActionType.HARM.value:
            entry.harms += 1
        else:
            entry.cheats += 1

    check_ins = await _rows("check_ins", device_id, "server_time")
    for c in check_ins:
        entry = bucket(c.get("server_time"))
        if entry is None:
            continue
        if c["type"] == CheckInType.CHECK_IN.value:
            entry.check_ins += 1
        else:
            entry.check_outs += 1
    for opened, seconds in _visits(check_ins):
        entry = bucket(opened)
        if entry:
            entry.time_on_page += seconds

    for entry in days.values():
        if entry.harms:
            entry.status = DayStatus.RELAPSED
        elif entry.sessions_started or entry.cheats or entry.check_ins or entry.check_outs:
            entry.status = DayStatus.CLEAN

    logger.debug("Details built: device=%s days=%d", device_id, len(days))
    return StatisticsDetailsResponse(
        start_date=start_date, end_date=end_date, entries=list(days.values()),
    )


async def pomodoro_summary(device_id: str) -> PomodoroSummary:
    completed = await _rows("pomodoro_sessions", device_id, "completed_at")
    today = clock.utcnow().date()

    result = PomodoroSummary(total_completed=len(completed))
    for p in completed:
        if p["type"] == TimerType.WORK.value:
            result.total_work_sessions += 1
            result.total_time_seconds += p["duration_seconds"]
        elif p["type"] == TimerType.SHORT_BREAK.value:
            result.total_short_breaks += 1
        else:
            result.total_long_breaks += 1
        if clock.as_utc(p["completed_at"]).date() == today:
            result.today_count += 1
    return result
