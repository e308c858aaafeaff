"""Lockdown State Machine: pure reconciliation, no I/O.

States:
  LOCKED → ACTIVE → COMPLETED
  LOCKED → COMPLETED            (expiry_status="completed" variant)

Rules:
  - There is no scheduler. Status and the derived time_remaining /
    time_ahead are recomputed from start/end time and "now" on every read;
    persisted values are a cache, never the source of truth.
  - COMPLETED is terminal.
  - end_time is fixed at creation (start + lockdown_minutes) and never moved.
  - The only early exit from ACTIVE is a harm action (see sessions.start_lockdown).
"""
from datetime import datetime, timedelta
from typing import Any, Dict

from core.clock import as_utc, seconds_between
from schemas.session import SessionStatus

# Valid transitions
_VALID_TRANSITIONS = {
    SessionStatus.LOCKED: {SessionStatus.ACTIVE, SessionStatus.COMPLETED},
    SessionStatus.ACTIVE: {SessionStatus.COMPLETED},
    SessionStatus.COMPLETED: set(),  # terminal
}


def can_transition(current: SessionStatus, to_state: SessionStatus) -> bool:
    return to_state in _VALID_TRANSITIONS.get(current, set())


def new_lockdown_fields(start: datetime, lockdown_minutes: int) -> Dict[str, Any]:
    """Fields of a freshly started lockdown."""
    return {
        "status": SessionStatus.LOCKED.value,
        "start_time": start,
        "end_time": start + timedelta(minutes=lockdown_minutes),
        "lockdown_minutes": lockdown_minutes,
        "time_remaining": lockdown_minutes * 60,
        "time_ahead": None,
        "live": True,
    }


def completion_fields() -> Dict[str, Any]:
    return {
        "status": SessionStatus.COMPLETED.value,
        "time_remaining": None,
        "time_ahead": None,
        "live": False,
    }


def reconcile(
    session: Dict[str, Any],
    now: datetime,
    expiry_status: str = SessionStatus.ACTIVE.value,
) -> Dict[str, Any]:
    """Return the fields that must change for session to reflect now.

    An empty dict means the stored document is already current. expiry_status
    picks what an expired live session becomes: "active" (the user is past
    the wait and ahead of plan) or "completed" (the period simply ends).
    """
    status = SessionStatus(session["status"])
    if status == SessionStatus.COMPLETED:
        return {}

    end_time = as_utc(session.get("end_time"))
    if end_time is None:
        return _changed(session, {"time_remaining": None, "time_ahead": None})

    expired = now >= end_time

    if expired and SessionStatus(expiry_status) == SessionStatus.COMPLETED:
        return _changed(session, completion_fields())

    if status == SessionStatus.LOCKED:
        if expired:
            return _changed(session, {
                "status": SessionStatus.ACTIVE.value,
                "time_remaining": None,
                "time_ahead": 0,
            })
        return _changed(session, {
            "time_remaining": max(0, seconds_between(end_time, now)),
        })

    # ACTIVE: seconds past the original end of the lockdown
    return _changed(session, {"time_ahead": seconds_between(now, end_time)})


def _changed(session: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if session.get(k) != v}
