"""
Scope service - who may view or decide a leave request

resolve_access is a pure function of a PrincipalScope snapshot and the
target record's property/department/requester. It never touches the
database, never raises, and is computed fresh per call because
assignments can change between calls.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Optional, Tuple

from leave_scope.constants import (
    DEPARTMENT_SCOPE_ROLES,
    GLOBAL_SCOPE_ROLES,
    PROPERTY_SCOPE_ROLES,
)
from leave_scope.models.principal import ROLE_RANK, Principal, Role

logger = logging.getLogger(__name__)


class AccessScope(str, enum.Enum):
    GLOBAL = "global"
    PROPERTY = "property"
    DEPARTMENT = "department"
    SELF = "self"
    NONE = "none"


def parse_role(value) -> Optional[Role]:
    """Map a stored role string (or Role) to Role; None when unrecognized"""
    if isinstance(value, Role):
        return value
    if value is None:
        return None
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class PrincipalScope:
    """Immutable snapshot of a principal's roles and assignments"""
    id: int
    primary_role: Optional[Role] = None
    role_grants: FrozenSet[Role] = field(default_factory=frozenset)
    property_ids: FrozenSet[int] = field(default_factory=frozenset)
    department_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def roles(self) -> FrozenSet[Role]:
        """Primary role plus every extra grant; staff when nothing is recognized"""
        held = set(self.role_grants)
        if self.primary_role is not None:
            held.add(self.primary_role)
        return frozenset(held) if held else frozenset({Role.STAFF})

    def holds_any(self, roles: Iterable[Role]) -> bool:
        return not self.roles.isdisjoint(roles)

    @classmethod
    def from_model(cls, principal: Principal) -> "PrincipalScope":
        grants = (parse_role(grant.role) for grant in principal.role_grants)
        return cls(
            id=principal.id,
            primary_role=parse_role(principal.primary_role),
            role_grants=frozenset(role for role in grants if role is not None),
            property_ids=frozenset(a.property_id for a in principal.property_assignments),
            department_ids=frozenset(a.department_id for a in principal.department_assignments),
        )


@dataclass(frozen=True)
class ApprovalDecision:
    can_view: bool
    can_approve: bool
    scope: AccessScope
    reason: str

    @property
    def can_decide(self) -> bool:
        """May approve or reject: authority through a role, not ownership"""
        return self.can_approve and self.scope not in (AccessScope.SELF, AccessScope.NONE)


def _global_rule(principal: PrincipalScope, property_id, department_id) -> bool:
    return True


def _property_rule(principal: PrincipalScope, property_id, department_id) -> bool:
    return property_id is not None and property_id in principal.property_ids


def _department_rule(principal: PrincipalScope, property_id, department_id) -> bool:
    return department_id is not None and department_id in principal.department_ids


# Ordered strongest first; each entry is (roles it applies to, scope granted, rule)
_SCOPE_RULES: Tuple[Tuple[FrozenSet[Role], AccessScope, Callable[..., bool]], ...] = (
    (GLOBAL_SCOPE_ROLES, AccessScope.GLOBAL, _global_rule),
    (PROPERTY_SCOPE_ROLES, AccessScope.PROPERTY, _property_rule),
    (DEPARTMENT_SCOPE_ROLES, AccessScope.DEPARTMENT, _department_rule),
)

_REASONS = {
    AccessScope.GLOBAL: "Global scope (regional role)",
    AccessScope.PROPERTY: "Property is assigned to principal",
    AccessScope.DEPARTMENT: "Department is assigned to principal",
    AccessScope.SELF: "Principal is the requester",
    AccessScope.NONE: "Outside principal's scope",
}


def _decision(scope: AccessScope) -> ApprovalDecision:
    allowed = scope != AccessScope.NONE
    return ApprovalDecision(can_view=allowed, can_approve=allowed, scope=scope, reason=_REASONS[scope])


def resolve_access(
    principal: PrincipalScope,
    target_property_id: Optional[int],
    target_department_id: Optional[int],
    target_requester_id: Optional[int] = None,
) -> ApprovalDecision:
    """
    Decide what a principal may do with a record in the given scope

    Every role the principal holds is evaluated (union of grants); the
    strongest granting rule is reported. When no role rule grants access
    the principal still sees their own records (self scope).

    Args:
        principal: Snapshot of the acting principal
        target_property_id: Property of the record (None never matches)
        target_department_id: Department of the record (None never matches)
        target_requester_id: Requester of the record, for the self rule

    Returns:
        ApprovalDecision
    """
    held = principal.roles
    for roles, scope, rule in _SCOPE_RULES:
        if held.isdisjoint(roles):
            continue
        if rule(principal, target_property_id, target_department_id):
            return _decision(scope)

    if target_requester_id is not None and target_requester_id == principal.id:
        return _decision(AccessScope.SELF)
    return _decision(AccessScope.NONE)


def highest_role(principal: PrincipalScope) -> Role:
    """Most senior role held, by ROLE_RANK"""
    return min(principal.roles, key=lambda role: ROLE_RANK[role])


def has_global_scope(principal: PrincipalScope) -> bool:
    return principal.holds_any(GLOBAL_SCOPE_ROLES)
