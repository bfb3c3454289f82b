"""
Leave service - the leave request approval state machine

Every view/act call resolves the actor's scope first; only resolver-approved
operations reach a transition. Transitions are applied by the record store's
compare-and-swap on status, so racing approve/reject calls produce exactly
one winner and the loser gets ConflictError.
"""
import logging
from datetime import date
from typing import List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from leave_scope.constants import (
    ALL_PROPERTIES,
    AUDIT_LEAVE_APPROVE,
    AUDIT_LEAVE_CANCEL,
    AUDIT_LEAVE_REJECT,
    AUDIT_LEAVE_SOFT_DELETE,
    AUDIT_LEAVE_SUBMIT,
    ENTITY_LEAVE_REQUESTS,
    NOTIFY_LEAVE_APPROVED,
    NOTIFY_LEAVE_REJECTED,
    SOFT_DELETE_ROLES,
)
from leave_scope.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from leave_scope.models.leave import (
    LEAVE_TRANSITIONS,
    TERMINAL_LEAVE_STATUSES,
    LeaveAction,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from leave_scope.models.principal import Principal
from leave_scope.services.audit_service import log_audit
from leave_scope.services.notification_service import notify_principal
from leave_scope.services.record_store import LeaveFilter, RecordStore
from leave_scope.services.scope_service import (
    ApprovalDecision,
    PrincipalScope,
    has_global_scope,
    resolve_access,
)

logger = logging.getLogger(__name__)

ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


# ----------------------------------------------------------------------
# Input validation (never touches the store)
# ----------------------------------------------------------------------

def parse_leave_type(value: Union[LeaveType, str]) -> LeaveType:
    if isinstance(value, LeaveType):
        return value
    try:
        return LeaveType(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(t.value for t in LeaveType)
        raise ValidationError(f"Unknown leave type '{value}'. Allowed: {allowed}")


def validate_leave_dates(start_date: date, end_date: date) -> None:
    """
    Validate that start_date <= end_date

    Raises:
        ValidationError: If the dates are missing or out of order
    """
    if start_date is None or end_date is None:
        raise ValidationError("start_date and end_date are required")
    if end_date < start_date:
        raise ValidationError("start_date must be less than or equal to end_date")


def validate_rejection_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("A rejection reason is required")
    return reason.strip()


# ----------------------------------------------------------------------
# Loading helpers
# ----------------------------------------------------------------------

def load_actor(store: RecordStore, principal_id: int) -> Tuple[Principal, PrincipalScope]:
    """
    Load the acting principal and snapshot their scope

    Raises:
        AuthorizationError: If the principal does not exist or is inactive
    """
    principal = store.get_principal(principal_id)
    if principal is None or not principal.active:
        raise AuthorizationError(f"principal {principal_id} missing or inactive")
    return principal, PrincipalScope.from_model(principal)


def _load_leave_request(store: RecordStore, leave_request_id: int, scope: PrincipalScope) -> LeaveRequest:
    """
    Load a live leave request for an actor

    Only global-scope actors learn that an id does not exist; everyone else
    gets the same AuthorizationError an out-of-scope request would give.
    """
    leave_request = store.get_leave_request(leave_request_id)
    if leave_request is None or leave_request.is_deleted:
        if not has_global_scope(scope):
            raise AuthorizationError(
                f"principal {scope.id} asked for missing leave request {leave_request_id}"
            )
        raise NotFoundError(f"Leave request with id {leave_request_id} not found")
    return leave_request


def decide(scope: PrincipalScope, leave_request: LeaveRequest) -> ApprovalDecision:
    return resolve_access(
        scope,
        leave_request.property_id,
        leave_request.department_id,
        leave_request.requester_id,
    )


def _require_decision_authority(scope: PrincipalScope, leave_request: LeaveRequest) -> ApprovalDecision:
    """Approve/reject guard: role-based authority and never on one's own request"""
    if leave_request.requester_id == scope.id:
        raise AuthorizationError(f"principal {scope.id} cannot decide their own leave request")
    decision = decide(scope, leave_request)
    if not decision.can_decide:
        raise AuthorizationError(
            f"principal {scope.id} has no authority over leave request {leave_request.id}: {decision.reason}"
        )
    return decision


def _transition(
    store: RecordStore,
    leave_request: LeaveRequest,
    action: LeaveAction,
    fields: dict,
) -> LeaveRequest:
    """
    Move a leave request along LEAVE_TRANSITIONS

    The current status read here is only a fast path; the store re-checks it
    atomically in the UPDATE, which is what resolves races.

    Raises:
        ConflictError: If the action is not allowed from the current status
            or another caller changed the status first
    """
    before_status = leave_request.status
    if before_status in TERMINAL_LEAVE_STATUSES:
        raise ConflictError(
            f"Cannot {action.value} leave request: it is already {before_status.value}"
        )
    next_status = LEAVE_TRANSITIONS.get((before_status, action))
    if next_status is None:
        raise ConflictError(
            f"Cannot {action.value} leave request with status {before_status.value}"
        )

    updated = store.conditional_update_leave_request(
        leave_request.id,
        expected_status=before_status,
        fields={"status": next_status, **fields},
    )
    logger.info(
        "leave status transition: leave_request_id=%s before=%s after=%s action=%s",
        updated.id, before_status.value, next_status.value, action.value,
    )
    return updated


# ----------------------------------------------------------------------
# Access
# ----------------------------------------------------------------------

def resolve_access_for(
    db: Session,
    principal_id: int,
    property_id: Optional[int],
    department_id: Optional[int],
    requester_id: Optional[int] = None,
) -> ApprovalDecision:
    """
    ResolveAccess for a stored principal

    Unknown or inactive principals get an all-false decision rather than an
    error, matching the resolver's least-privilege behaviour.
    """
    principal = RecordStore(db).get_principal(principal_id)
    if principal is None or not principal.active:
        return resolve_access(PrincipalScope(id=principal_id), None, None, None)
    return resolve_access(PrincipalScope.from_model(principal), property_id, department_id, requester_id)


# ----------------------------------------------------------------------
# Transitions
# ----------------------------------------------------------------------

def resolve_request_target(
    store: RecordStore,
    principal: Principal,
    scope: PrincipalScope,
    property_id: Optional[int],
    department_id: Optional[int],
) -> Tuple[Optional[int], Optional[int]]:
    """
    Work out the property/department a new request is filed under

    Explicit values must be reachable through the requester's own
    assignments; a department's property counts as reachable.
    """
    assigned_departments = []
    for assignment in principal.department_assignments:
        department = store.get_department(assignment.department_id)
        if department is not None:
            assigned_departments.append(department)
    reachable_properties = set(scope.property_ids) | {d.property_id for d in assigned_departments}

    if department_id is not None:
        department = next((d for d in assigned_departments if d.id == department_id), None)
        if department is None:
            raise AuthorizationError(f"department {department_id} is not assigned to principal {scope.id}")
        if property_id is not None and property_id != department.property_id:
            raise ValidationError(
                f"Department {department_id} does not belong to property {property_id}"
            )
        return department.property_id, department.id

    if property_id is not None:
        if property_id not in reachable_properties:
            raise AuthorizationError(f"property {property_id} is not assigned to principal {scope.id}")
        department = next((d for d in assigned_departments if d.property_id == property_id), None)
        return property_id, department.id if department else None

    if assigned_departments:
        primary = assigned_departments[0]
        return primary.property_id, primary.id
    if principal.property_assignments:
        return principal.property_assignments[0].property_id, None
    return None, None


def validate_overlap(
    store: RecordStore,
    requester_id: int,
    start_date: date,
    end_date: date,
) -> None:
    """
    Validate that the new request doesn't overlap the requester's
    existing pending or approved requests

    Raises:
        ValidationError: If an overlap is found
    """
    overlapping = store.query_leave_requests(
        LeaveFilter(
            requester_id=requester_id,
            status=ACTIVE_LEAVE_STATUSES,
            start_date_lte=end_date,
            end_date_gte=start_date,
        )
    )
    if overlapping:
        existing = overlapping[0]
        raise ValidationError(
            f"Leave request overlaps with existing leave from {existing.start_date} to {existing.end_date}"
        )


def submit_leave_request(
    db: Session,
    requester_id: int,
    start_date: date,
    end_date: date,
    leave_type: Union[LeaveType, str],
    reason: Optional[str] = None,
    property_id: Optional[int] = None,
    department_id: Optional[int] = None,
) -> LeaveRequest:
    """
    Submit a leave request on the requester's own behalf (creates PENDING)

    Args:
        db: Database session
        requester_id: Authenticated principal filing the request
        start_date: First day of leave (inclusive)
        end_date: Last day of leave (inclusive)
        leave_type: LeaveType or its string value
        reason: Optional free-text reason
        property_id: Optional explicit property (defaults to primary assignment)
        department_id: Optional explicit department (defaults to primary assignment)

    Returns:
        Created LeaveRequest instance

    Raises:
        ValidationError: Bad dates, unknown type, overlap, department/property mismatch
        AuthorizationError: Requester inactive or target outside their assignments
    """
    # Input checks run before the store is touched
    leave_type = parse_leave_type(leave_type)
    validate_leave_dates(start_date, end_date)
    reason = reason.strip() if reason and reason.strip() else None

    store = RecordStore(db)
    principal, scope = load_actor(store, requester_id)
    property_id, department_id = resolve_request_target(store, principal, scope, property_id, department_id)
    validate_overlap(store, requester_id, start_date, end_date)

    leave_request = store.insert_leave_request(
        requester_id=requester_id,
        property_id=property_id,
        department_id=department_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        reason=reason,
        status=LeaveStatus.PENDING,
        is_deleted=False,
    )
    logger.info(
        "leave submitted: leave_request_id=%s requester_id=%s property_id=%s department_id=%s",
        leave_request.id, requester_id, property_id, department_id,
    )

    log_audit(
        store,
        actor_id=requester_id,
        action=AUDIT_LEAVE_SUBMIT,
        entity_type=ENTITY_LEAVE_REQUESTS,
        entity_id=leave_request.id,
        meta={
            "leave_type": leave_type,
            "start_date": start_date,
            "end_date": end_date,
            "property_id": property_id,
            "department_id": department_id,
            "status": LeaveStatus.PENDING,
        },
    )
    return leave_request


def approve_leave_request(db: Session, leave_request_id: int, approver_id: int) -> LeaveRequest:
    """
    Approve a pending leave request

    Raises:
        NotFoundError: Unknown or soft-deleted request (global-scope callers;
            everyone else gets AuthorizationError)
        AuthorizationError: Approver lacks authority (or is the requester)
        ConflictError: Request is no longer pending
    """
    store = RecordStore(db)
    _, scope = load_actor(store, approver_id)
    leave_request = _load_leave_request(store, leave_request_id, scope)
    decision = _require_decision_authority(scope, leave_request)

    updated = _transition(store, leave_request, LeaveAction.APPROVE, {"approved_by_id": approver_id})

    log_audit(
        store,
        actor_id=approver_id,
        action=AUDIT_LEAVE_APPROVE,
        entity_type=ENTITY_LEAVE_REQUESTS,
        entity_id=updated.id,
        meta={
            "requester_id": updated.requester_id,
            "before": LeaveStatus.PENDING,
            "after": updated.status,
            "scope": decision.scope,
        },
    )
    notify_principal(store, updated.requester_id, NOTIFY_LEAVE_APPROVED, updated, approver_id)
    return updated


def reject_leave_request(
    db: Session,
    leave_request_id: int,
    approver_id: int,
    reason: Optional[str],
) -> LeaveRequest:
    """
    Reject a pending leave request with a mandatory reason

    Raises:
        ValidationError: Empty or whitespace-only reason (checked first)
        NotFoundError: Unknown or soft-deleted request (global-scope callers;
            everyone else gets AuthorizationError)
        AuthorizationError: Approver lacks authority (or is the requester)
        ConflictError: Request is no longer pending
    """
    reason = validate_rejection_reason(reason)

    store = RecordStore(db)
    _, scope = load_actor(store, approver_id)
    leave_request = _load_leave_request(store, leave_request_id, scope)
    decision = _require_decision_authority(scope, leave_request)

    updated = _transition(
        store,
        leave_request,
        LeaveAction.REJECT,
        {"rejected_by_id": approver_id, "rejection_reason": reason},
    )

    log_audit(
        store,
        actor_id=approver_id,
        action=AUDIT_LEAVE_REJECT,
        entity_type=ENTITY_LEAVE_REQUESTS,
        entity_id=updated.id,
        meta={
            "requester_id": updated.requester_id,
            "before": LeaveStatus.PENDING,
            "after": updated.status,
            "scope": decision.scope,
            "rejection_reason": reason,
        },
    )
    notify_principal(
        store,
        updated.requester_id,
        NOTIFY_LEAVE_REJECTED,
        updated,
        approver_id,
        extra={"rejection_reason": reason},
    )
    return updated


def cancel_leave_request(db: Session, leave_request_id: int, requester_id: int) -> LeaveRequest:
    """
    Requester withdraws their own pending request

    Once decided, a request can no longer be self-cancelled.

    Raises:
        NotFoundError: Unknown or soft-deleted request (global-scope callers;
            everyone else gets AuthorizationError)
        AuthorizationError: Caller is not the requester
        ConflictError: Request is no longer pending
    """
    store = RecordStore(db)
    _, scope = load_actor(store, requester_id)
    leave_request = _load_leave_request(store, leave_request_id, scope)
    if leave_request.requester_id != requester_id:
        raise AuthorizationError(
            f"principal {requester_id} is not the requester of leave request {leave_request_id}"
        )

    updated = _transition(store, leave_request, LeaveAction.CANCEL, {"cancelled_by_id": requester_id})

    log_audit(
        store,
        actor_id=requester_id,
        action=AUDIT_LEAVE_CANCEL,
        entity_type=ENTITY_LEAVE_REQUESTS,
        entity_id=updated.id,
        meta={"before": LeaveStatus.PENDING, "after": updated.status},
    )
    return updated


def soft_delete_leave_request(db: Session, leave_request_id: int, actor_id: int) -> LeaveRequest:
    """
    Hide a leave request from every listing without changing its status

    Only HR-tier roles (regional_admin, regional_hr, property_hr) with scope
    over the request may do this.
    """
    store = RecordStore(db)
    _, scope = load_actor(store, actor_id)
    leave_request = _load_leave_request(store, leave_request_id, scope)

    if not scope.holds_any(SOFT_DELETE_ROLES):
        raise AuthorizationError(f"principal {actor_id} holds no HR-tier role")
    decision = decide(scope, leave_request)
    if not decision.can_decide:
        raise AuthorizationError(
            f"principal {actor_id} has no scope over leave request {leave_request_id}: {decision.reason}"
        )

    updated = store.soft_delete_leave_request(leave_request_id, actor_id)
    logger.info(
        "leave soft-deleted: leave_request_id=%s actor_id=%s status=%s",
        updated.id, actor_id, updated.status.value,
    )

    log_audit(
        store,
        actor_id=actor_id,
        action=AUDIT_LEAVE_SOFT_DELETE,
        entity_type=ENTITY_LEAVE_REQUESTS,
        entity_id=updated.id,
        meta={"status": updated.status, "scope": decision.scope},
    )
    return updated


# ----------------------------------------------------------------------
# Reads
# ----------------------------------------------------------------------

def get_leave_request(db: Session, leave_request_id: int, viewer_id: int) -> LeaveRequest:
    store = RecordStore(db)
    _, scope = load_actor(store, viewer_id)
    leave_request = _load_leave_request(store, leave_request_id, scope)
    if not decide(scope, leave_request).can_view:
        raise AuthorizationError(f"principal {viewer_id} cannot view leave request {leave_request_id}")
    return leave_request


def list_my_leave_requests(db: Session, requester_id: int) -> List[LeaveRequest]:
    """The requester's own requests, all statuses, newest first"""
    store = RecordStore(db)
    load_actor(store, requester_id)
    requests = store.query_leave_requests(LeaveFilter(requester_id=requester_id))
    # ids are assigned in submission order
    return sorted(requests, key=lambda r: r.id, reverse=True)


def parse_property_filter(value: Optional[Union[int, str]]) -> Optional[int]:
    """
    Turn a listing's property filter into an id

    None and the "all" sentinel both mean "no property filter"; what that
    covers is still limited by the viewer's scope.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if text in ("", ALL_PROPERTIES):
        return None
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"Invalid property filter '{value}'")


def list_team_leave_requests(
    db: Session,
    viewer_id: int,
    property_filter: Optional[Union[int, str]] = None,
    status: Optional[LeaveStatus] = None,
) -> List[LeaveRequest]:
    """
    Every non-deleted request the viewer may see, newest first

    - regional_admin / regional_hr: all requests
    - property_manager / property_hr: requests in assigned properties
    - department_head: requests in assigned departments
    - everyone: their own requests
    """
    property_id = parse_property_filter(property_filter)
    store = RecordStore(db)
    _, scope = load_actor(store, viewer_id)

    candidates = store.query_scoped_leave_requests(
        requester_id=scope.id,
        property_ids=scope.property_ids,
        department_ids=scope.department_ids,
        global_scope=has_global_scope(scope),
        property_id=property_id,
        status=status,
    )
    return [r for r in candidates if decide(scope, r).can_view]


def list_pending_for_approver(db: Session, approver_id: int) -> List[LeaveRequest]:
    """Pending requests the approver may decide, oldest first"""
    store = RecordStore(db)
    _, scope = load_actor(store, approver_id)

    candidates = store.query_scoped_leave_requests(
        requester_id=scope.id,
        property_ids=scope.property_ids,
        department_ids=scope.department_ids,
        global_scope=has_global_scope(scope),
        status=LeaveStatus.PENDING,
    )
    decidable = [
        r for r in candidates
        if r.requester_id != scope.id and decide(scope, r).can_decide
    ]
    return sorted(decidable, key=lambda r: r.id)
