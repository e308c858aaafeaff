"""Action log: cheat/harm declarations and follow-up reflections.

  cheat: only while LOCKED. Logged; the lockdown continues un-shortened.
  harm:  only while ACTIVE. Supersedes the active session with a new lockdown.

Declaring the wrong action for the current state is rejected by the state
check alone; there is no separate cross-detection logic.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from core import clock
from core.database import find_one_safe, find_safe, get_db
from core.exceptions import InvalidAction, NoPendingFollowUp
from lockdown.sessions import resolve_current_session, start_lockdown
from observability.audit_log import log_audit_event
from schemas.action import (
    FOLLOW_UP_QUESTION,
    Action,
    ActionResponse,
    ActionType,
    FollowUp,
    FollowUpRequest,
    FollowUpResponse,
    PendingFollowUpQuestion,
    PendingFollowUpResponse,
)
from schemas.audit import AuditEventType
from schemas.session import SessionStatus

logger = logging.getLogger(__name__)

CHEAT_CONSEQUENCES = {
    "message": "Action logged. Consequences will apply.",
    "additional_lockdown": 0,
}


async def _append_action(
    device_id: str,
    session_id: str,
    action_type: ActionType,
    client_time: Optional[datetime],
    lockdown_started: bool,
    consequences: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    doc = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        "session_id": session_id,
        "type": action_type.value,
        "server_time": clock.utcnow(),
        "client_time": client_time,
        "lockdown_started": lockdown_started,
        "consequences": consequences,
    }
    await get_db().actions.insert_one(doc)
    doc.pop("_id", None)
    return doc


async def log_cheat(device_id: str, client_time: Optional[datetime] = None) -> ActionResponse:
    session = await resolve_current_session(device_id)
    if session.status != SessionStatus.LOCKED:
        logger.info("Cheat rejected: device=%s status=%s", device_id, session.status.value)
        raise InvalidAction("Cheat action is only allowed during lockdown period")

    doc = await _append_action(
        device_id, session.id, ActionType.CHEAT, client_time,
        lockdown_started=False, consequences=dict(CHEAT_CONSEQUENCES),
    )
    logger.info("Cheat logged: device=%s session=%s action=%s", device_id, session.id, doc["id"])
    await log_audit_event(
        AuditEventType.CHEAT_LOGGED,
        device_id=device_id,
        details={"action_id": doc["id"], "session_id": session.id},
    )
    return ActionResponse(action=Action.from_doc(doc), session=session)


async def log_harm(device_id: str, client_time: Optional[datetime] = None) -> ActionResponse:
    session = await resolve_current_session(device_id)
    if session.status != SessionStatus.ACTIVE:
        logger.info("Harm rejected: device=%s status=%s", device_id, session.status.value)
        raise InvalidAction("Harm action is only allowed during active period")

    new_session = await start_lockdown(device_id, session.id)
    doc = await _append_action(
        device_id, new_session.id, ActionType.HARM, client_time, lockdown_started=True,
    )
    logger.info(
        "Harm logged: device=%s superseded=%s session=%s action=%s",
        device_id, session.id, new_session.id, doc["id"],
    )
    await log_audit_event(
        AuditEventType.HARM_LOGGED,
        device_id=device_id,
        details={
            "action_id": doc["id"],
            "superseded_session_id": session.id,
            "session_id": new_session.id,
        },
    )
    return ActionResponse(action=Action.from_doc(doc), session=new_session)


async def _find_pending_harm(device_id: str) -> Optional[Dict[str, Any]]:
    """Most recent harm action that no follow-up references."""
    follow_ups = await find_safe(
        "follow_ups", {"device_id": device_id}, limit=10000, extra_projection={"action_id": 1},
    )
    answered = [f["action_id"] for f in follow_ups]
    return await find_one_safe(
        "actions",
        {"device_id": device_id, "type": ActionType.HARM.value, "id": {"$nin": answered}},
        sort=[("server_time", -1)],
    )


async def get_pending_follow_up(device_id: str) -> PendingFollowUpResponse:
    harm = await _find_pending_harm(device_id)
    if harm is None:
        return PendingFollowUpResponse(has_pending=False)

    session = None
    if harm.get("session_id"):
        session = await find_one_safe("sessions", {"id": harm["session_id"]})

    last_lockdown = clock.as_utc(session["start_time"]) if session else None
    cycles_missed = None
    if session and session.get("lockdown_minutes"):
        elapsed = clock.seconds_between(clock.utcnow(), last_lockdown)
        cycles_missed = max(0, elapsed // (session["lockdown_minutes"] * 60))

    return PendingFollowUpResponse(
        has_pending=True,
        question=PendingFollowUpQuestion(id=harm["id"], text=FOLLOW_UP_QUESTION),
        last_lockdown_timestamp=last_lockdown,
        cycles_missed=cycles_missed,
    )


async def submit_follow_up(
    device_id: str,
    request: FollowUpRequest,
    client_time: Optional[datetime] = None,
) -> FollowUpResponse:
    harm = await _find_pending_harm(device_id)
    if harm is None:
        raise NoPendingFollowUp("No pending follow-up question found")

    now = clock.utcnow()
    doc = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        "action_id": harm["id"],
        "question": FOLLOW_UP_QUESTION,
        "answer": request.answer,
        "harm_ids": [str(h) for h in request.harm_ids],
        "client_time": client_time,
        "created_at": now,
    }
    await get_db().follow_ups.insert_one(doc)
    doc.pop("_id", None)
    logger.info("Follow-up submitted: device=%s action=%s", device_id, harm["id"])
    await log_audit_event(
        AuditEventType.FOLLOW_UP_SUBMITTED,
        device_id=device_id,
        details={"action_id": harm["id"], "answer": request.answer},
    )
    return FollowUpResponse(follow_up=FollowUp.from_doc(doc))
