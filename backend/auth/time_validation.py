"""Client clock validation: anti-tamper admission check.

Mobile clients send X-Client-Time with every state-changing request. The
server never trusts it as a clock; it only rejects requests from a device
whose clock has drifted (or been pushed) beyond the tolerance.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header

from auth.device_auth import require_device_id
from config.settings import get_settings
from core import clock
from core.exceptions import TimeValidationFailed
from observability.audit_log import log_audit_event
from schemas.audit import AuditEventType

logger = logging.getLogger(__name__)


def parse_client_time(header: Optional[str]) -> datetime:
    """Parse an ISO-8601 datetime that carries an explicit UTC offset."""
    if header is None or not header.strip():
        raise TimeValidationFailed("X-Client-Time header is required")

    try:
        parsed = datetime.fromisoformat(header.strip())
        if parsed.tzinfo is None:
            raise TimeValidationFailed(
                "Invalid date format in X-Client-Time header. A UTC offset (e.g. 'Z') is required."
            )
        # Offsets on dates at the edge of the calendar can overflow in conversion
        return clock.as_utc(parsed)
    except (ValueError, OverflowError):
        raise TimeValidationFailed(
            "Invalid date format in X-Client-Time header. Expected ISO-8601 format."
        )


def validate_client_time(
    header: Optional[str],
    now: Optional[datetime] = None,
    tolerance_s: Optional[int] = None,
) -> datetime:
    """Return the validated client time. Raises TimeValidationFailed.

    The tolerance boundary is inclusive.
    """
    client_time = parse_client_time(header)
    now = now or clock.utcnow()
    if tolerance_s is None:
        tolerance_s = get_settings().CLIENT_TIME_TOLERANCE_S

    skew = abs((now - client_time).total_seconds())
    if skew > tolerance_s:
        raise TimeValidationFailed(
            "Time validation failed. Please ensure your device time is correct."
        )
    return client_time


async def require_client_time(
    device_id: str = Depends(require_device_id),
    x_client_time: Optional[str] = Header(default=None, alias="X-Client-Time"),
) -> datetime:
    """FastAPI dependency: device is authenticated first, then its clock is checked."""
    try:
        return validate_client_time(x_client_time)
    except TimeValidationFailed as e:
        logger.warning(
            "Client time rejected: device=%s header=%r reason=%s",
            device_id, (x_client_time or "")[:64], e.message,
        )
        await log_audit_event(
            AuditEventType.TIME_VALIDATION_FAILED,
            device_id=device_id,
            details={"client_time": (x_client_time or "")[:64], "reason": e.message},
        )
        raise
