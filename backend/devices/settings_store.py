"""Per-device settings: one row per device, upsert semantics.

Reading defaults and persisting them are separate operations:
get_or_default() never writes, ensure_settings() never overwrites.
"""
import logging

from pymongo import ReturnDocument

from config.settings import get_settings
from core import clock
from core.database import find_one_safe, get_db
from observability.audit_log import log_audit_event
from schemas.audit import AuditEventType
from schemas.settings import DeviceSettings

logger = logging.getLogger(__name__)

SETTING_FIELDS = ("lockdown_minutes", "work_minutes", "short_break_minutes", "long_break_minutes")


def default_values() -> dict:
    """Configured defaults for a device that has never saved settings."""
    settings = get_settings()
    return {
        "lockdown_minutes": settings.DEFAULT_LOCKDOWN_MINUTES,
        "work_minutes": settings.DEFAULT_WORK_MINUTES,
        "short_break_minutes": settings.DEFAULT_SHORT_BREAK_MINUTES,
        "long_break_minutes": settings.DEFAULT_LONG_BREAK_MINUTES,
    }


async def get_or_default(device_id: str) -> DeviceSettings:
    doc = await find_one_safe("settings", {"device_id": device_id})
    if doc is None:
        return DeviceSettings(**default_values())
    return DeviceSettings.from_doc(doc)


async def ensure_settings(device_id: str) -> DeviceSettings:
    """Create the settings row with defaults if missing. Idempotent."""
    db = get_db()
    now = clock.utcnow()
    doc = await db.settings.find_one_and_update(
        {"device_id": device_id},
        {"$setOnInsert": {**default_values(), "created_at": now, "updated_at": now}},
        upsert=True,
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    return DeviceSettings.from_doc(doc)


async def update_settings(device_id: str, changes: dict) -> DeviceSettings:
    """Apply a partial update. Fields not in changes keep their value (or default).

    Bounds are enforced by the request model before this is called. Live
    sessions keep the duration they were created with.
    """
    unknown = set(changes) - set(SETTING_FIELDS)
    if unknown:
        raise ValueError(f"Unknown settings fields: {sorted(unknown)}")

    db = get_db()
    now = clock.utcnow()
    on_insert = {k: v for k, v in default_values().items() if k not in changes}
    on_insert["created_at"] = now

    doc = await db.settings.find_one_and_update(
        {"device_id": device_id},
        {"$set": {**changes, "updated_at": now}, "$setOnInsert": on_insert},
        upsert=True,
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Settings updated: device=%s changes=%s", device_id, changes)
    await log_audit_event(AuditEventType.SETTINGS_UPDATED, device_id=device_id, details=changes)
    return DeviceSettings.from_doc(doc)
