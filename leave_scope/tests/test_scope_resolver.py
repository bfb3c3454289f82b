"""
Tests for the scope resolver
"""
from leave_scope.models.principal import Role
from leave_scope.services.scope_service import (
    AccessScope,
    PrincipalScope,
    highest_role,
    parse_role,
    resolve_access,
)


def scope(principal_id=1, role=Role.STAFF, grants=(), properties=(), departments=()):
    return PrincipalScope(
        id=principal_id,
        primary_role=role,
        role_grants=frozenset(grants),
        property_ids=frozenset(properties),
        department_ids=frozenset(departments),
    )


def test_regional_roles_see_everything():
    for role in (Role.REGIONAL_ADMIN, Role.REGIONAL_HR):
        decision = resolve_access(scope(role=role), 99, 42, target_requester_id=7)
        assert decision.can_view
        assert decision.can_approve
        assert decision.scope == AccessScope.GLOBAL


def test_property_roles_allowed_iff_property_assigned():
    manager = scope(role=Role.PROPERTY_MANAGER, properties=[10])

    assert resolve_access(manager, 10, 500).scope == AccessScope.PROPERTY
    denied = resolve_access(manager, 11, 500)
    assert not denied.can_view
    assert not denied.can_approve
    assert denied.scope == AccessScope.NONE


def test_department_head_allowed_iff_department_assigned():
    head = scope(role=Role.DEPARTMENT_HEAD, departments=[5])

    assert resolve_access(head, 10, 5).can_approve
    assert not resolve_access(head, 10, 6).can_approve


def test_union_of_grants_department_head_plus_property_hr():
    """Department head of D1 who is also property HR of P2 sees both"""
    principal = scope(
        role=Role.DEPARTMENT_HEAD,
        grants=[Role.PROPERTY_HR],
        properties=[2],
        departments=[1],
    )

    in_d1 = resolve_access(principal, 1, 1)
    in_p2 = resolve_access(principal, 2, 77)
    elsewhere = resolve_access(principal, 3, 99)

    assert in_d1.can_approve and in_d1.scope == AccessScope.DEPARTMENT
    assert in_p2.can_approve and in_p2.scope == AccessScope.PROPERTY
    assert not elsewhere.can_view


def test_strongest_rule_is_reported():
    principal = scope(
        role=Role.DEPARTMENT_HEAD,
        grants=[Role.PROPERTY_MANAGER],
        properties=[1],
        departments=[1],
    )
    decision = resolve_access(principal, 1, 1)
    assert decision.scope == AccessScope.PROPERTY


def test_none_target_never_matches_property_or_department_rule():
    principal = scope(role=Role.PROPERTY_HR, grants=[Role.DEPARTMENT_HEAD], properties=[1], departments=[1])
    assert resolve_access(principal, None, None).scope == AccessScope.NONE


def test_self_rule_grants_view_but_not_decide():
    staff = scope(principal_id=8)

    own = resolve_access(staff, 1, 1, target_requester_id=8)
    other = resolve_access(staff, 1, 1, target_requester_id=9)

    assert own.can_view
    assert own.scope == AccessScope.SELF
    assert not own.can_decide
    assert not other.can_view


def test_unknown_role_degrades_to_staff():
    assert parse_role("night_auditor") is None
    principal = scope(role=parse_role("night_auditor"))
    assert principal.roles == frozenset({Role.STAFF})
    assert resolve_access(principal, 1, 1).scope == AccessScope.NONE


def test_parse_role_normalizes_case_and_whitespace():
    assert parse_role(" Property_HR ") == Role.PROPERTY_HR
    assert parse_role(None) is None


def test_highest_role_uses_rank():
    principal = scope(role=Role.DEPARTMENT_HEAD, grants=[Role.REGIONAL_HR, Role.STAFF])
    assert highest_role(principal) == Role.REGIONAL_HR


def test_resolve_access_endpoint(client, org):
    from conftest import auth_headers

    response = client.get(
        "/api/v1/access/resolve",
        params={"property_id": org.harbour.id, "department_id": org.front_desk.id},
        headers=auth_headers(org.front_desk_head),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["can_view"] is True
    assert data["can_approve"] is True
    assert data["scope"] == "department"

    response = client.get(
        "/api/v1/access/resolve",
        params={"property_id": org.summit.id, "department_id": org.spa.id},
        headers=auth_headers(org.front_desk_head),
    )
    assert response.json()["scope"] == "none"


def test_resolve_access_for_unknown_principal_is_denied(db):
    from leave_scope.services.leave_service import resolve_access_for

    decision = resolve_access_for(db, 12345, 1, 1, 12345)
    assert not decision.can_view
    assert decision.scope == AccessScope.NONE
