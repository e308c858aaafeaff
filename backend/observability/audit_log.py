"""Audit trail: append-only record of state changes and tamper rejections.

Events are written to the audit_events collection and echoed to the log.
"""
import logging
from typing import Any, Dict, Optional

from core import clock
from core.database import get_db
from observability.redaction import redact_dict
from schemas.audit import AuditEvent, AuditEventType

logger = logging.getLogger(__name__)


async def log_audit_event(
    event_type: AuditEventType,
    device_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> str:
    """Persist one event and return its event_id.

    Details are redacted before they are stored, not only before logging.
    """
    event = AuditEvent(
        event_type=event_type,
        device_id=device_id,
        timestamp=clock.utcnow(),
        details=redact_dict(details or {}),
    )
    await get_db().audit_events.insert_one(event.to_doc())

    logger.info("AUDIT event=%s device=%s details=%s", event_type.value, device_id, event.details)
    return event.event_id
