"""
Tests for leave approve/reject
"""
from datetime import date

import pytest
from fastapi import status

from conftest import auth_headers, create_leave, create_principal
from leave_scope.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from leave_scope.models.audit_log import AuditLog
from leave_scope.models.leave import LeaveRequest, LeaveStatus
from leave_scope.models.notification import NotificationIntent
from leave_scope.services.leave_service import (
    approve_leave_request,
    list_pending_for_approver,
    reject_leave_request,
)
from leave_scope.services.record_store import RecordStore


@pytest.fixture
def pending_leave(db, org):
    return create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk)


def test_department_head_approves(db, org, pending_leave):
    updated = approve_leave_request(db, pending_leave.id, org.front_desk_head.id)

    assert updated.status == LeaveStatus.APPROVED
    assert updated.approved_by_id == org.front_desk_head.id

    audit = db.query(AuditLog).filter(AuditLog.action == "LEAVE_APPROVE").one()
    assert audit.entity_id == pending_leave.id
    assert audit.meta_json["before"] == "pending"
    assert audit.meta_json["after"] == "approved"

    intent = db.query(NotificationIntent).one()
    assert intent.kind == "leave_approved"
    assert intent.recipient_id == org.alice.id


def test_second_approve_is_conflict_not_a_second_mutation(db, org, pending_leave):
    approve_leave_request(db, pending_leave.id, org.front_desk_head.id)

    with pytest.raises(ConflictError):
        approve_leave_request(db, pending_leave.id, org.harbour_manager.id)

    leave = db.query(LeaveRequest).filter(LeaveRequest.id == pending_leave.id).one()
    assert leave.approved_by_id == org.front_desk_head.id
    assert db.query(AuditLog).filter(AuditLog.action == "LEAVE_APPROVE").count() == 1


def test_property_manager_and_regional_roles_can_approve(db, org):
    for approver in (org.harbour_manager, org.regional_admin, org.regional_hr):
        leave = create_leave(db, org.carol, date(2024, 7, 1), date(2024, 7, 1), department=org.kitchen)
        assert approve_leave_request(db, leave.id, approver.id).status == LeaveStatus.APPROVED


def test_out_of_scope_approver_is_not_authorized(db, org, pending_leave):
    with pytest.raises(AuthorizationError) as exc_info:
        approve_leave_request(db, pending_leave.id, org.spa_head.id)

    assert exc_info.value.detail == "Not authorized"
    db.expire_all()
    assert db.get(LeaveRequest, pending_leave.id).status == LeaveStatus.PENDING


def test_staff_cannot_approve_colleague(db, org, pending_leave):
    with pytest.raises(AuthorizationError):
        approve_leave_request(db, pending_leave.id, org.bob.id)


def test_requester_cannot_approve_own_leave_even_with_scope(db, org):
    own = create_leave(db, org.front_desk_head, date(2024, 6, 10), date(2024, 6, 10), department=org.front_desk)

    with pytest.raises(AuthorizationError):
        approve_leave_request(db, own.id, org.front_desk_head.id)
    with pytest.raises(AuthorizationError):
        reject_leave_request(db, own.id, org.front_desk_head.id, "No")


def test_unauthorized_check_comes_before_status_check(db, org, pending_leave):
    approve_leave_request(db, pending_leave.id, org.front_desk_head.id)

    with pytest.raises(AuthorizationError):
        approve_leave_request(db, pending_leave.id, org.spa_head.id)


def test_reject_with_reason(db, org, pending_leave):
    updated = reject_leave_request(db, pending_leave.id, org.harbour_hr.id, "  Peak season  ")

    assert updated.status == LeaveStatus.REJECTED
    assert updated.rejected_by_id == org.harbour_hr.id
    assert updated.rejection_reason == "Peak season"

    intent = db.query(NotificationIntent).one()
    assert intent.kind == "leave_rejected"
    assert intent.data["rejection_reason"] == "Peak season"


@pytest.mark.parametrize("reason", ["", "   ", "\t\n", None])
def test_blank_reject_reason_is_validation_error_and_status_unchanged(db, org, pending_leave, reason):
    with pytest.raises(ValidationError):
        reject_leave_request(db, pending_leave.id, org.front_desk_head.id, reason)

    db.expire_all()
    assert db.get(LeaveRequest, pending_leave.id).status == LeaveStatus.PENDING


def test_reject_after_approve_is_conflict(db, org, pending_leave):
    approve_leave_request(db, pending_leave.id, org.front_desk_head.id)

    with pytest.raises(ConflictError):
        reject_leave_request(db, pending_leave.id, org.harbour_manager.id, "Too late")


def test_losing_compare_and_swap_raises_conflict(db, org, pending_leave):
    """Another approver wins between our read and our write"""
    store = RecordStore(db)
    store.conditional_update_leave_request(
        pending_leave.id, LeaveStatus.PENDING, {"status": LeaveStatus.REJECTED, "rejection_reason": "x"}
    )

    with pytest.raises(ConflictError):
        store.conditional_update_leave_request(
            pending_leave.id, LeaveStatus.PENDING, {"status": LeaveStatus.APPROVED}
        )

    db.expire_all()
    assert db.get(LeaveRequest, pending_leave.id).status == LeaveStatus.REJECTED


def test_approve_unknown_or_deleted_request_is_not_found(db, org):
    deleted = create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 10),
                           department=org.front_desk, is_deleted=True)

    with pytest.raises(NotFoundError):
        approve_leave_request(db, 9999, org.regional_admin.id)
    with pytest.raises(NotFoundError):
        approve_leave_request(db, deleted.id, org.regional_admin.id)


def test_department_head_approving_unknown_request_is_not_authorized(db, org):
    with pytest.raises(AuthorizationError):
        approve_leave_request(db, 9999, org.front_desk_head.id)
    with pytest.raises(AuthorizationError):
        reject_leave_request(db, 9999, org.front_desk_head.id, "Short staffed")


def test_inactive_approver_is_not_authorized(db, org, pending_leave):
    retired = create_principal(db, "Retired Admin", role="regional_admin", active=False)

    with pytest.raises(AuthorizationError):
        approve_leave_request(db, pending_leave.id, retired.id)


def test_pending_list_for_approver(db, org, pending_leave):
    own = create_leave(db, org.front_desk_head, date(2024, 8, 1), date(2024, 8, 1), department=org.front_desk)
    spa_leave = create_leave(db, org.dan, date(2024, 6, 10), date(2024, 6, 10), department=org.spa)
    create_leave(db, org.bob, date(2024, 6, 1), date(2024, 6, 1), department=org.front_desk,
                 status=LeaveStatus.APPROVED)

    head_ids = [r.id for r in list_pending_for_approver(db, org.front_desk_head.id)]
    admin_ids = [r.id for r in list_pending_for_approver(db, org.regional_admin.id)]

    assert head_ids == [pending_leave.id]
    assert own.id not in head_ids
    assert admin_ids == [pending_leave.id, own.id, spa_leave.id]
    assert list_pending_for_approver(db, org.bob.id) == []


def test_approve_endpoint(client, org, pending_leave):
    response = client.post(
        f"/api/v1/leaves/{pending_leave.id}/approve",
        headers=auth_headers(org.front_desk_head),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "approved"

    again = client.post(
        f"/api/v1/leaves/{pending_leave.id}/approve",
        headers=auth_headers(org.front_desk_head),
    )
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["code"] == "conflict"


def test_approve_endpoint_forbidden_hides_reason(client, org, pending_leave):
    response = client.post(
        f"/api/v1/leaves/{pending_leave.id}/approve",
        headers=auth_headers(org.spa_head),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Not authorized"


def test_reject_endpoint_blank_reason_returns_400(client, org, pending_leave):
    response = client.post(
        f"/api/v1/leaves/{pending_leave.id}/reject",
        json={"reason": "   "},
        headers=auth_headers(org.front_desk_head),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_pending_endpoint(client, org, pending_leave):
    response = client.get("/api/v1/leaves/pending", headers=auth_headers(org.harbour_manager))

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == pending_leave.id
