"""
Notification intents for leave decisions

Only the intent is recorded (who, what kind, which request). Rendering
and delivery belong to whatever drains notification_intents.
"""
from typing import Any, Dict, Optional

from leave_scope.models.leave import LeaveRequest
from leave_scope.models.notification import NotificationIntent
from leave_scope.services.audit_service import run_side_channel
from leave_scope.services.record_store import RecordStore


def notify_principal(
    store: RecordStore,
    recipient_id: int,
    kind: str,
    leave_request: LeaveRequest,
    actor_id: int,
    extra: Optional[Dict[str, Any]] = None,
) -> Optional[NotificationIntent]:
    data = {
        "actor_id": actor_id,
        "status": leave_request.status,
        "start_date": leave_request.start_date,
        "end_date": leave_request.end_date,
        "leave_type": leave_request.leave_type,
    }
    if extra:
        data.update(extra)
    return run_side_channel(
        "notification",
        lambda: store.enqueue_notification(
            recipient_id=recipient_id,
            kind=kind,
            leave_request_id=leave_request.id,
            data=data,
        ),
        kind=kind,
        leave_request_id=leave_request.id,
    )
