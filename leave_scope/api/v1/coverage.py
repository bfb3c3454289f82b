"""
Coverage and conflict endpoints
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_scope.core.deps import get_db, get_current_principal
from leave_scope.models.principal import Principal
from leave_scope.schemas.coverage import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictOut,
    ConflictScanResponse,
    CoverageResponse,
    CoverageSnapshotOut,
    LeaveEventOut,
    LeaveEventsResponse,
)
from leave_scope.services.coverage_service import (
    analyze_coverage,
    check_request_conflicts,
    find_conflicts,
    list_leave_events,
)
from leave_scope.utils.datetime_utils import now_utc

router = APIRouter()


@router.get("/properties/{property_id}", response_model=CoverageResponse)
async def property_coverage_endpoint(
    property_id: int,
    on_date: Optional[date] = Query(None, alias="date", description="Day to analyze (YYYY-MM-DD), default today"),
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Staffing coverage per department on one day

    Only approved leave counts. Departments outside the caller's scope are
    left out.
    """
    target = on_date or now_utc().date()
    snapshots = analyze_coverage(db, property_id, target, viewer_id=current_principal.id)
    return CoverageResponse(
        property_id=property_id,
        date=target,
        items=[CoverageSnapshotOut.model_validate(s) for s in snapshots],
    )


@router.get("/properties/{property_id}/conflicts", response_model=ConflictScanResponse)
def property_conflicts_endpoint(
    property_id: int,
    start_date: date = Query(..., alias="start", description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., alias="end", description="Last day (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Short-staffed (day, department) pairs in a window

    Approved and pending leave both count. status=cancelled means the scan
    ran out of time and the list is partial.
    """
    scan = find_conflicts(db, property_id, start_date, end_date, viewer_id=current_principal.id)
    return ConflictScanResponse(
        property_id=property_id,
        start_date=start_date,
        end_date=end_date,
        status=scan.status,
        items=[ConflictOut.model_validate(c) for c in scan.conflicts],
        total=len(scan.conflicts),
    )


@router.get("/properties/{property_id}/events", response_model=LeaveEventsResponse)
async def property_leave_events_endpoint(
    property_id: int,
    start_date: date = Query(..., alias="start", description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., alias="end", description="Last day (YYYY-MM-DD)"),
    department_id: Optional[int] = Query(None, description="Only this department"),
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Approved and pending leave overlapping a window, for the calendar view
    """
    events = list_leave_events(
        db,
        viewer_id=current_principal.id,
        property_id=property_id,
        start_date=start_date,
        end_date=end_date,
        department_id=department_id,
    )
    return LeaveEventsResponse(
        property_id=property_id,
        start_date=start_date,
        end_date=end_date,
        items=[LeaveEventOut.model_validate(e) for e in events],
        total=len(events),
    )


@router.post("/conflict-check", response_model=ConflictCheckResponse)
async def conflict_check_endpoint(
    check: ConflictCheckRequest,
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal)
):
    """
    Conflicts the caller's leave would cause if submitted now

    status=cancelled means the check ran out of time; has_conflict=false is
    then not an all-clear.
    """
    scan = check_request_conflicts(
        db,
        requester_id=current_principal.id,
        start_date=check.start_date,
        end_date=check.end_date,
        property_id=check.property_id,
        department_id=check.department_id,
    )
    return ConflictCheckResponse(
        has_conflict=bool(scan.conflicts),
        status=scan.status,
        items=[ConflictOut.model_validate(c) for c in scan.conflicts],
    )
