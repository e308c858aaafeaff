"""Device authentication: the client-generated device id is the tenant key.

There is no login: a syntactically valid UUID in X-Device-Id is the whole
credential.
"""
import logging
import re
from typing import Optional

from fastapi import Header

from core.exceptions import Unauthorized

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def validate_device_id(header: Optional[str]) -> str:
    """Return the normalized device id. Raises Unauthorized when absent or malformed."""
    if header is None or not header.strip():
        raise Unauthorized("Device ID is required")

    value = header.strip()
    if not _UUID_RE.match(value):
        raise Unauthorized("Invalid device ID: Device ID must be a valid UUID")
    return value.lower()


async def require_device_id(
    x_device_id: Optional[str] = Header(default=None, alias="X-Device-Id"),
) -> str:
    """FastAPI dependency for every device-scoped route."""
    try:
        return validate_device_id(x_device_id)
    except Unauthorized:
        logger.warning("Rejected device id header: %r", (x_device_id or "")[:64])
        raise
