"""Lockdown sessions: persistence around the pure state machine.

Every read resolves the device's live session: it is created lazily when
missing and reconciled against the clock when present. A partial unique
index (one live session per device) turns the find-then-create race into a
DuplicateKeyError, which is resolved by adopting the winner's session.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from config.settings import get_settings
from core import clock
from core.database import find_one_safe, find_safe, get_db
from core.exceptions import InvalidAction
from devices.registry import ensure_device
from devices.settings_store import ensure_settings
from lockdown.state_machine import (
    can_transition,
    new_lockdown_fields,
    reconcile,
)
from observability.audit_log import log_audit_event
from schemas.action import ActionType
from schemas.audit import AuditEventType
from schemas.session import (
    LIVE_STATUSES,
    CheckIn,
    CheckInResponse,
    CheckInType,
    CurrentSessionResponse,
    Session,
    SessionStatus,
    UserStats,
)

logger = logging.getLogger(__name__)


async def find_live_session(device_id: str) -> Optional[Dict[str, Any]]:
    return await find_one_safe(
        "sessions",
        {"device_id": device_id, "status": {"$in": list(LIVE_STATUSES)}},
        sort=[("start_time", -1)],
    )


async def _create_locked_session(device_id: str, lockdown_minutes: int, now: datetime) -> Dict[str, Any]:
    doc = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        **new_lockdown_fields(now, lockdown_minutes),
    }
    db = get_db()
    try:
        await db.sessions.insert_one(doc)
    except DuplicateKeyError:
        existing = await find_live_session(device_id)
        if existing is None:
            raise
        logger.warning(
            "Concurrent lockdown creation lost: device=%s adopting session=%s",
            device_id, existing["id"],
        )
        return await _reconcile_and_persist(existing, now)

    doc.pop("_id", None)
    logger.info(
        "Lockdown started: device=%s session=%s minutes=%d ends=%s",
        device_id, doc["id"], lockdown_minutes, doc["end_time"].isoformat(),
    )
    await log_audit_event(
        AuditEventType.SESSION_CREATED,
        device_id=device_id,
        details={"session_id": doc["id"], "lockdown_minutes": lockdown_minutes},
    )
    return doc


async def _reconcile_and_persist(doc: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Apply reconcile() and write back whatever changed."""
    changes = reconcile(doc, now, get_settings().LOCKDOWN_EXPIRY_STATUS)
    if not changes:
        return doc

    current = SessionStatus(doc["status"])
    to_state = SessionStatus(changes.get("status", current.value))
    if to_state != current and not can_transition(current, to_state):
        raise ValueError(f"Invalid transition: {current.value} -> {to_state.value}")

    db = get_db()
    result = await db.sessions.update_one(
        {"id": doc["id"], "status": current.value},  # optimistic lock
        {"$set": changes},
    )
    if result.matched_count == 0:
        # Another request moved this session first; its write wins.
        fresh = await find_one_safe("sessions", {"id": doc["id"]})
        logger.info("Session changed concurrently: session=%s", doc["id"])
        return fresh or doc

    if to_state != current:
        logger.info(
            "Session transition: device=%s session=%s %s -> %s",
            doc["device_id"], doc["id"], current.value, to_state.value,
        )
        event = (
            AuditEventType.SESSION_UNLOCKED
            if to_state == SessionStatus.ACTIVE
            else AuditEventType.SESSION_COMPLETED
        )
        await log_audit_event(
            event,
            device_id=doc["device_id"],
            details={"session_id": doc["id"], "from": current.value, "to": to_state.value},
        )
    return {**doc, **changes}


async def resolve_current_session(device_id: str) -> Session:
    """The device's live session, created (locked) if there is none."""
    await ensure_device(device_id)
    settings = await ensure_settings(device_id)
    now = clock.utcnow()

    doc = await find_live_session(device_id)
    if doc is None:
        doc = await _create_locked_session(device_id, settings.lockdown_minutes, now)
    else:
        doc = await _reconcile_and_persist(doc, now)
    return Session.from_doc(doc)


async def start_lockdown(device_id: str, superseded_id: str) -> Session:
    """Supersede the active session superseded_id with a fresh locked one.

    Only called as the consequence of a harm action. The completion is
    conditional on the session still being active, so of two concurrent
    harms only one gets past it; the other raises InvalidAction.
    """
    settings = await ensure_settings(device_id)
    now = clock.utcnow()

    db = get_db()
    result = await db.sessions.update_one(
        {"id": superseded_id, "device_id": device_id, "status": SessionStatus.ACTIVE.value},
        {"$set": {"status": SessionStatus.COMPLETED.value, "live": False}},
    )
    if result.matched_count == 0:
        logger.info("Supersede lost: device=%s session=%s no longer active", device_id, superseded_id)
        raise InvalidAction("Harm action is only allowed during active period")

    logger.info("Active session superseded: device=%s session=%s", device_id, superseded_id)
    await log_audit_event(
        AuditEventType.SESSION_COMPLETED,
        device_id=device_id,
        details={"reason": "harm", "session_id": superseded_id},
    )

    doc = await _create_locked_session(device_id, settings.lockdown_minutes, now)
    return Session.from_doc(doc)


async def get_user_stats(device_id: str, now: Optional[datetime] = None) -> UserStats:
    now = now or clock.utcnow()
    completed = await find_safe(
        "sessions",
        {"device_id": device_id, "status": SessionStatus.COMPLETED.value},
        limit=10000,
        sort_field="start_time",
    )

    total_time_saved = sum(s["lockdown_minutes"] * 60 for s in completed)

    # Consecutive finished lockdowns, newest first
    current_streak = 0
    for s in completed:
        end_time = clock.as_utc(s.get("end_time"))
        if end_time is not None and end_time <= now:
            current_streak += 1
        else:
            break

    last_harm = await find_one_safe(
        "actions",
        {"device_id": device_id, "type": ActionType.HARM.value},
        sort=[("server_time", -1)],
    )
    return UserStats(
        id=device_id,
        total_time_saved=total_time_saved,
        current_streak=current_streak,
        last_relapse=clock.as_utc(last_harm["server_time"]) if last_harm else None,
    )


async def get_current_session_view(device_id: str) -> CurrentSessionResponse:
    session = await resolve_current_session(device_id)
    user = await get_user_stats(device_id)
    return CurrentSessionResponse(session=session, user=user)


async def create_check_in(
    device_id: str,
    check_in_type: CheckInType,
    client_time: Optional[datetime] = None,
) -> CheckInResponse:
    """Presence ping tied to the live session. Reporting only; no transitions."""
    session = await resolve_current_session(device_id)
    now = clock.utcnow()
    doc = {
        "id": str(uuid.uuid4()),
        "device_id": device_id,
        "session_id": session.id,
        "type": check_in_type.value,
        "server_time": now,
        "client_time": client_time,
        "created_at": now,
    }
    await get_db().check_ins.insert_one(doc)
    logger.debug(
        "Check-in recorded: device=%s session=%s type=%s",
        device_id, session.id, check_in_type.value,
    )
    return CheckInResponse(check_in=CheckIn.from_doc(doc), session=session)
