"""Pomodoro timer: explicit-command sibling of the lockdown machine.

States:
  IDLE → RUNNING ⇄ PAUSED
  RUNNING → COMPLETED   (lazily, on the first command after time runs out)
  any → IDLE            (reset)

While running, remaining_seconds in the store is the remaining time at the
moment started_at was set; the live value is derived on read and only
written back on pause or completion.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pymongo import ReturnDocument

from core import clock
from core.database import find_one_safe, get_db
from core.exceptions import InvalidTimerState
from devices.registry import ensure_device
from devices.settings_store import get_or_default
from observability.audit_log import log_audit_event
from schemas.audit import AuditEventType
from schemas.settings import DeviceSettings
from schemas.timer import Timer, TimerResponse, TimerStatus, TimerType

logger = logging.getLogger(__name__)


def duration_for(timer_type: TimerType, settings: DeviceSettings) -> int:
    minutes = {
        TimerType.WORK: settings.work_minutes,
        TimerType.SHORT_BREAK: settings.short_break_minutes,
        TimerType.LONG_BREAK: settings.long_break_minutes,
    }[timer_type]
    return minutes * 60


def live_remaining(doc: Dict[str, Any], now: datetime) -> Optional[int]:
    """Remaining seconds of a running timer at now; None when not running."""
    started_at = clock.as_utc(doc.get("started_at"))
    if doc["status"] != TimerStatus.RUNNING.value or started_at is None:
        return None
    elapsed = clock.seconds_between(now, started_at)
    return max(0, doc["remaining_seconds"] - elapsed)


async def _load_or_create(device_id: str) -> Dict[str, Any]:
    doc = await find_one_safe("timers", {"device_id": device_id})
    if doc is not None:
        return doc

    settings = await get_or_default(device_id)
    duration = duration_for(TimerType.WORK, settings)
    db = get_db()
    doc = await db.timers.find_one_and_update(
        {"device_id": device_id},
        {"$setOnInsert": {
            "id": str(uuid.uuid4()),
            "status": TimerStatus.IDLE.value,
            "type": TimerType.WORK.value,
            "duration_seconds": duration,
            "remaining_seconds": duration,
            "started_at": None,
            "paused_at": None,
        }},
        upsert=True,
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Timer created: device=%s", device_id)
    return doc


async def _update(device_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    return await get_db().timers.find_one_and_update(
        {"device_id": device_id},
        {"$set": fields},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )


async def _complete(doc: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Record the finished period and park the timer in COMPLETED."""
    db = get_db()
    await db.pomodoro_sessions.insert_one({
        "id": str(uuid.uuid4()),
        "device_id": doc["device_id"],
        "type": doc["type"],
        "duration_seconds": doc["duration_seconds"],
        "completed_at": now,
    })
    updated = await _update(doc["device_id"], {
        "status": TimerStatus.COMPLETED.value,
        "remaining_seconds": 0,
    })
    logger.info("Timer completed: device=%s type=%s", doc["device_id"], doc["type"])
    await log_audit_event(
        AuditEventType.TIMER_COMPLETED,
        device_id=doc["device_id"],
        details={"type": doc["type"], "duration_seconds": doc["duration_seconds"]},
    )
    return updated


async def _settle(device_id: str) -> Tuple[Dict[str, Any], Optional[int]]:
    """Load the timer and apply lazy completion. Returns (doc, live remaining)."""
    await ensure_device(device_id)
    doc = await _load_or_create(device_id)
    now = clock.utcnow()
    remaining = live_remaining(doc, now)
    if remaining == 0:
        return await _complete(doc, now), None
    return doc, remaining


async def get_timer(device_id: str) -> TimerResponse:
    doc, remaining = await _settle(device_id)
    return TimerResponse(timer=Timer.from_doc(doc, remaining_seconds=remaining))


async def start_timer(device_id: str, timer_type: TimerType) -> TimerResponse:
    """Start (or restart) a period of the given type from its full duration."""
    await _settle(device_id)
    settings = await get_or_default(device_id)
    duration = duration_for(timer_type, settings)
    doc = await _update(device_id, {
        "status": TimerStatus.RUNNING.value,
        "type": timer_type.value,
        "duration_seconds": duration,
        "remaining_seconds": duration,
        "started_at": clock.utcnow(),
        "paused_at": None,
    })
    logger.info("Timer started: device=%s type=%s seconds=%d", device_id, timer_type.value, duration)
    return TimerResponse(timer=Timer.from_doc(doc))


async def pause_timer(device_id: str) -> TimerResponse:
    doc, remaining = await _settle(device_id)
    if doc["status"] != TimerStatus.RUNNING.value:
        raise InvalidTimerState("Timer is not running")

    doc = await _update(device_id, {
        "status": TimerStatus.PAUSED.value,
        "remaining_seconds": remaining if remaining is not None else doc["remaining_seconds"],
        "paused_at": clock.utcnow(),
    })
    return TimerResponse(timer=Timer.from_doc(doc))


async def resume_timer(device_id: str) -> TimerResponse:
    doc, _ = await _settle(device_id)
    if doc["status"] != TimerStatus.PAUSED.value:
        raise InvalidTimerState("Timer is not paused")

    doc = await _update(device_id, {
        "status": TimerStatus.RUNNING.value,
        "started_at": clock.utcnow(),
        "paused_at": None,
    })
    return TimerResponse(timer=Timer.from_doc(doc))


async def reset_timer(device_id: str) -> TimerResponse:
    doc, _ = await _settle(device_id)
    doc = await _update(device_id, {
        "status": TimerStatus.IDLE.value,
        "remaining_seconds": doc["duration_seconds"],
        "started_at": None,
        "paused_at": None,
    })
    return TimerResponse(timer=Timer.from_doc(doc))
