"""Device registry: devices are created lazily on first interaction."""
import logging

from core import clock
from core.database import get_db

logger = logging.getLogger(__name__)


async def ensure_device(device_id: str) -> None:
    """Idempotent: record the device if unseen, refresh last_seen_at otherwise."""
    db = get_db()
    now = clock.utcnow()
    result = await db.devices.update_one(
        {"id": device_id},
        {
            "$setOnInsert": {"created_at": now},
            "$set": {"last_seen_at": now},
        },
        upsert=True,
    )
    if result.upserted_id is not None:
        logger.info("Device registered: device=%s", device_id)
