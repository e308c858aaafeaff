"""MongoDB async connection manager.

Singleton client and database handles (timezone-aware datetimes on read).
Creates indexes on startup for every collection the service writes.
"""
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from config.settings import get_settings

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        settings = get_settings()
        _client = AsyncIOMotorClient(settings.MONGO_URL, tz_aware=True)
    return _client


def get_db() -> AsyncIOMotorDatabase:
    global _db
    if _db is None:
        settings = get_settings()
        _db = get_client()[settings.DB_NAME]
    return _db


async def init_indexes() -> None:
    """Create required indexes. Idempotent."""
    db = get_db()

    await db.devices.create_index("id", unique=True)

    # Settings: one row per device
    await db.settings.create_index("device_id", unique=True)

    # Sessions: at most one live (active/locked) session per device
    await db.sessions.create_index("id", unique=True)
    await db.sessions.create_index(
        "device_id",
        unique=True,
        partialFilterExpression={"live": True},
        name="one_live_session_per_device",
    )
    await db.sessions.create_index([("device_id", 1), ("status", 1), ("start_time", -1)])

    # Actions / follow-ups: pending follow-up lookup
    await db.actions.create_index("id", unique=True)
    await db.actions.create_index([("device_id", 1), ("type", 1), ("server_time", -1)])
    await db.follow_ups.create_index("id", unique=True)
    await db.follow_ups.create_index([("device_id", 1), ("action_id", 1)])

    await db.check_ins.create_index([("device_id", 1), ("server_time", -1)])

    # Pomodoro: one timer row per device, completed-session history
    await db.timers.create_index("device_id", unique=True)
    await db.pomodoro_sessions.create_index([("device_id", 1), ("completed_at", -1)])

    # Audit events: time-series queries
    await db.audit_events.create_index([("device_id", 1), ("timestamp", -1)])
    await db.audit_events.create_index("event_type")

    logger.info("MongoDB indexes initialized")


async def ping() -> bool:
    """Round-trip to the server. False when unreachable."""
    try:
        await get_db().command("ping")
        return True
    except Exception as e:
        logger.warning("MongoDB ping failed: %s", e)
        return False


async def close_db() -> None:
    global _client, _db
    if _client:
        _client.close()
        _client = None
        _db = None
        logger.info("MongoDB connection closed")


# ── Query helpers: results never carry Mongo's _id ──

def _projection(extra: dict | None) -> dict:
    projection: dict = {"_id": 0}
    if extra:
        projection.update(extra)
    return projection


async def find_one_safe(
    collection_name: str,
    query: dict,
    sort: list[tuple[str, int]] | None = None,
    extra_projection: dict | None = None,
) -> dict | None:
    """Single document (first by sort, when given) or None."""
    collection = get_db()[collection_name]
    return await collection.find_one(query, _projection(extra_projection), sort=sort)


async def find_safe(
    collection_name: str,
    query: dict,
    limit: int = 1000,
    sort_field: str | None = None,
    sort_dir: int = -1,
    extra_projection: dict | None = None,
) -> list[dict]:
    """Documents matching query, capped at limit so a device can't force an unbounded read."""
    cursor = get_db()[collection_name].find(query, _projection(extra_projection))
    if sort_field:
        cursor = cursor.sort(sort_field, sort_dir)
    return await cursor.limit(limit).to_list(limit)
