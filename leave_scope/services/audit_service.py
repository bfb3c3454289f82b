"""
Audit logging service

Audit entries and notification intents are side channels: they are
written after a transition has committed, and a failure to write them
never turns that transition into an error. Failures are logged with the
"side_channel_failure" marker so they can be counted and alerted on.
"""
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

from leave_scope.models.audit_log import AuditLog
from leave_scope.services.record_store import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_side_channel(channel: str, write: Callable[[], T], **context: Any) -> Optional[T]:
    """
    Run a side-channel write; log and swallow its failure

    Args:
        channel: Name used in the log line ("audit", "notification")
        write: Zero-argument callable performing the write
        context: Extra identifiers for the log line

    Returns:
        Whatever write returned, or None if it failed
    """
    try:
        return write()
    except Exception as exc:
        logger.error(
            "side_channel_failure channel=%s context=%s error=%s",
            channel, context, exc,
            exc_info=True,
        )
        return None


def log_audit(
    store: RecordStore,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Create an audit log entry

    Args:
        store: Record store bound to the current session
        actor_id: ID of the principal performing the action
        action: Action type (e.g., "LEAVE_APPROVE")
        entity_type: Type of entity (e.g., "leave_requests")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Created AuditLog instance, or None if the write failed
    """
    return run_side_channel(
        "audit",
        lambda: store.append_audit_entry(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta,
        ),
        action=action,
        entity_id=entity_id,
    )
