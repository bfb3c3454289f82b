"""
Tests for leave submission
"""
from datetime import date
from unittest.mock import MagicMock

import pytest

from conftest import auth_headers, create_leave, create_principal
from leave_scope.core.exceptions import AuthorizationError, ValidationError
from leave_scope.models.audit_log import AuditLog
from leave_scope.models.leave import LeaveStatus, LeaveType
from leave_scope.services.leave_service import submit_leave_request


def test_end_before_start_rejected_before_store_access():
    db = MagicMock()

    with pytest.raises(ValidationError):
        submit_leave_request(db, 1, date(2024, 6, 12), date(2024, 6, 10), LeaveType.ANNUAL)

    assert db.mock_calls == []


def test_unknown_leave_type_rejected_before_store_access():
    db = MagicMock()

    with pytest.raises(ValidationError, match="Unknown leave type"):
        submit_leave_request(db, 1, date(2024, 6, 10), date(2024, 6, 10), "sabbatical")

    assert db.mock_calls == []


def test_submit_defaults_to_primary_assignment(db, org):
    leave = submit_leave_request(
        db, org.alice.id, date(2024, 6, 10), date(2024, 6, 12), "annual", reason="  Family trip  "
    )

    assert leave.status == LeaveStatus.PENDING
    assert leave.requester_id == org.alice.id
    assert leave.property_id == org.harbour.id
    assert leave.department_id == org.front_desk.id
    assert leave.reason == "Family trip"
    assert leave.is_deleted is False

    audit = db.query(AuditLog).filter(AuditLog.entity_id == leave.id).one()
    assert audit.action == "LEAVE_SUBMIT"
    assert audit.actor_id == org.alice.id


def test_single_day_leave_is_allowed(db, org):
    leave = submit_leave_request(db, org.alice.id, date(2024, 6, 10), date(2024, 6, 10), LeaveType.SICK)
    assert leave.start_date == leave.end_date


def test_property_only_principal_defaults_to_property(db, org):
    leave = submit_leave_request(db, org.harbour_hr.id, date(2024, 6, 10), date(2024, 6, 11), "personal")

    assert leave.property_id == org.harbour.id
    assert leave.department_id is None


def test_unassigned_principal_submits_without_scope(db, org):
    leave = submit_leave_request(db, org.regional_admin.id, date(2024, 6, 10), date(2024, 6, 11), "annual")

    assert leave.property_id is None
    assert leave.department_id is None


def test_explicit_department_outside_assignments_is_not_authorized(db, org):
    with pytest.raises(AuthorizationError):
        submit_leave_request(
            db, org.alice.id, date(2024, 6, 10), date(2024, 6, 11), "annual", department_id=org.spa.id
        )


def test_explicit_property_outside_assignments_is_not_authorized(db, org):
    with pytest.raises(AuthorizationError):
        submit_leave_request(
            db, org.alice.id, date(2024, 6, 10), date(2024, 6, 11), "annual", property_id=org.summit.id
        )


def test_department_property_mismatch_is_validation_error(db, org):
    with pytest.raises(ValidationError, match="does not belong"):
        submit_leave_request(
            db,
            org.alice.id,
            date(2024, 6, 10),
            date(2024, 6, 11),
            "annual",
            property_id=org.summit.id,
            department_id=org.front_desk.id,
        )


def test_overlap_with_pending_or_approved_is_rejected(db, org):
    create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk)

    with pytest.raises(ValidationError, match="overlaps"):
        submit_leave_request(db, org.alice.id, date(2024, 6, 12), date(2024, 6, 14), "annual")


def test_overlap_ignores_rejected_cancelled_and_deleted(db, org):
    create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk,
                 status=LeaveStatus.REJECTED)
    create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk,
                 status=LeaveStatus.CANCELLED)
    create_leave(db, org.alice, date(2024, 6, 10), date(2024, 6, 12), department=org.front_desk,
                 is_deleted=True)

    leave = submit_leave_request(db, org.alice.id, date(2024, 6, 11), date(2024, 6, 11), "annual")
    assert leave.status == LeaveStatus.PENDING


def test_inactive_requester_is_not_authorized(db, org):
    ghost = create_principal(db, "Gone Staff", departments=[org.front_desk], active=False)

    with pytest.raises(AuthorizationError):
        submit_leave_request(db, ghost.id, date(2024, 6, 10), date(2024, 6, 11), "annual")


def test_submit_endpoint(client, org):
    response = client.post(
        "/api/v1/leaves",
        json={"leave_type": "annual", "start_date": "2024-06-10", "end_date": "2024-06-12"},
        headers=auth_headers(org.bob),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["requester_id"] == org.bob.id
    assert data["department_id"] == org.front_desk.id
    assert data["created_at"].endswith("Z")


def test_submit_endpoint_bad_dates_returns_400(client, org):
    response = client.post(
        "/api/v1/leaves",
        json={"leave_type": "annual", "start_date": "2024-06-12", "end_date": "2024-06-10"},
        headers=auth_headers(org.bob),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_submit_requires_authentication(client, org):
    response = client.post(
        "/api/v1/leaves",
        json={"leave_type": "annual", "start_date": "2024-06-10", "end_date": "2024-06-12"},
    )
    assert response.status_code in (401, 403)
