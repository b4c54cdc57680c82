"""Audit trail for registrations, credit decisions and balance resets."""

from typing import Any

from docscan.core.logging import get_logger
from docscan.models.audit_log import AuditLog

log = get_logger(__name__)


async def log_event(
    user_id: str | None,
    event_type: str,
    entity_type: str,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    """Append to the audit_logs collection. ``user_id`` is None for scheduled/system events."""
    entry = AuditLog(
        user_id=user_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata or {},
    )
    await entry.insert()
    log.debug("audit_event", event_type=event_type, entity_type=entity_type, entity_id=entity_id)
    return entry
