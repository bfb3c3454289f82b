"""
Tests for audit/notification failure isolation
"""
import logging
from datetime import date

from conftest import create_leave
from leave_scope.models.leave import LeaveRequest, LeaveStatus
from leave_scope.models.notification import NotificationIntent
from leave_scope.services.leave_service import approve_leave_request, reject_leave_request
from leave_scope.services.record_store import RecordStore


def test_audit_failure_does_not_undo_approval(db, org, monkeypatch, caplog):
    leave = create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk)

    def broken_audit(self, *args, **kwargs):
        raise RuntimeError("audit table locked")

    monkeypatch.setattr(RecordStore, "append_audit_entry", broken_audit)

    with caplog.at_level(logging.ERROR):
        updated = approve_leave_request(db, leave.id, org.front_desk_head.id)

    assert updated.status == LeaveStatus.APPROVED
    db.expire_all()
    assert db.get(LeaveRequest, leave.id).status == LeaveStatus.APPROVED
    assert any(
        "side_channel_failure" in record.getMessage() and "channel=audit" in record.getMessage()
        for record in caplog.records
    )
    # The notification channel is independent of the audit channel
    assert db.query(NotificationIntent).count() == 1


def test_notification_failure_does_not_undo_rejection(db, org, monkeypatch, caplog):
    leave = create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk)

    def broken_enqueue(self, *args, **kwargs):
        raise RuntimeError("outbox unavailable")

    monkeypatch.setattr(RecordStore, "enqueue_notification", broken_enqueue)

    with caplog.at_level(logging.ERROR):
        updated = reject_leave_request(db, leave.id, org.harbour_manager.id, "Event week")

    assert updated.status == LeaveStatus.REJECTED
    assert any("channel=notification" in record.getMessage() for record in caplog.records)
