"""
Leave endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_scope.core.deps import get_db, get_current_principal
from leave_scope.models.leave import LeaveStatus
from leave_scope.models.principal import Principal
from leave_scope.schemas.leave import (
    LeaveSubmitRequest,
    LeaveOut,
    LeaveListResponse,
    RejectActionRequest,
)
from leave_scope.services.leave_service import (
    submit_leave_request,
    approve_leave_request,
    reject_leave_request,
    cancel_leave_request,
    soft_delete_leave_request,
    get_leave_request,
    list_my_leave_requests,
    list_team_leave_requests,
    list_pending_for_approver,
)

router = APIRouter()


def _list_response(leave_requests) -> LeaveListResponse:
    return LeaveListResponse(
        items=[LeaveOut.model_validate(req) for req in leave_requests],
        total=len(leave_requests)
    )


@router.post("", response_model=LeaveOut, status_code=201)
async def submit_leave_endpoint(
    leave_data: LeaveSubmitRequest,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Submit a leave request (creates PENDING)

    Any authenticated principal can submit leave for themselves only.

    Validations:
    - Date order (start_date <= end_date)
    - Property/department must be one of the requester's assignments
    - Overlap prevention (no overlap with PENDING/APPROVED leaves)
    """
    return submit_leave_request(
        db=db,
        requester_id=current_principal.id,
        start_date=leave_data.start_date,
        end_date=leave_data.end_date,
        leave_type=leave_data.leave_type,
        reason=leave_data.reason,
        property_id=leave_data.property_id,
        department_id=leave_data.department_id,
    )


@router.get("/my", response_model=LeaveListResponse)
async def list_my_leaves_endpoint(
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """List current principal's leave requests (all statuses)."""
    return _list_response(list_my_leave_requests(db, current_principal.id))


@router.get("/team", response_model=LeaveListResponse)
async def list_team_leaves_endpoint(
    property_id: Optional[str] = Query(None, description="Property id, or 'all' for no property filter"),
    status: Optional[LeaveStatus] = Query(None, description="Status filter"),
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    List leave requests with scope-based visibility

    - regional_admin / regional_hr: every property
    - property_manager / property_hr: assigned properties
    - department_head: assigned departments
    - everyone: their own requests

    Soft-deleted requests are never listed.
    """
    return _list_response(
        list_team_leave_requests(
            db,
            viewer_id=current_principal.id,
            property_filter=property_id,
            status=status,
        )
    )


@router.get("/pending", response_model=LeaveListResponse)
async def list_pending_leaves_endpoint(
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    List pending leave requests the current principal may approve or reject

    Own requests are never included. Staff get an empty list.
    """
    return _list_response(list_pending_for_approver(db, current_principal.id))


@router.get("/{leave_request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    return get_leave_request(db, leave_request_id, viewer_id=current_principal.id)


@router.post("/{leave_request_id}/approve", response_model=LeaveOut)
async def approve_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Approve a pending leave request

    Authority comes from the scope rules (global, property or department);
    nobody approves their own leave. A request that is no longer pending
    returns 409.
    """
    return approve_leave_request(db, leave_request_id, approver_id=current_principal.id)


@router.post("/{leave_request_id}/reject", response_model=LeaveOut)
async def reject_leave_endpoint(
    leave_request_id: int,
    reject_data: RejectActionRequest,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Reject a pending leave request

    Same authority as approve. A blank reason returns 400.
    """
    return reject_leave_request(
        db,
        leave_request_id,
        approver_id=current_principal.id,
        reason=reject_data.reason,
    )


@router.post("/{leave_request_id}/cancel", response_model=LeaveOut)
async def cancel_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """Withdraw one's own pending leave request."""
    return cancel_leave_request(db, leave_request_id, requester_id=current_principal.id)


@router.delete("/{leave_request_id}", response_model=LeaveOut)
async def soft_delete_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Soft-delete a leave request (HR tier only)

    The status is kept; the request just disappears from listings.
    """
    return soft_delete_leave_request(db, leave_request_id, actor_id=current_principal.id)
