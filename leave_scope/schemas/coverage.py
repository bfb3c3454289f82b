"""
Coverage and conflict schemas
"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from leave_scope.models.leave import LeaveStatus, LeaveType
from leave_scope.services.coverage_service import ScanStatus


class CoverageSnapshotOut(BaseModel):
    department_id: int
    department_name: str
    date: date
    total_staff: int
    staff_on_leave: int
    coverage_percentage: int
    upcoming_leaves: int

    model_config = ConfigDict(from_attributes=True)


class CoverageResponse(BaseModel):
    property_id: int
    date: date
    items: List[CoverageSnapshotOut]


class ConflictOut(BaseModel):
    department_id: int
    department_name: str
    date: date
    total_staff: int
    staff_on_leave: int
    coverage_percentage: int
    is_critical: bool

    model_config = ConfigDict(from_attributes=True)


class ConflictScanResponse(BaseModel):
    """Conflicts for a window; partial when status is cancelled"""
    property_id: int
    start_date: date
    end_date: date
    status: ScanStatus
    items: List[ConflictOut]
    total: int


class ConflictCheckRequest(BaseModel):
    """Would this leave, if filed now, leave the department short-staffed?"""
    start_date: date
    end_date: date
    property_id: Optional[int] = Field(None, description="Defaults to the requester's primary assignment")
    department_id: Optional[int] = Field(None, description="Defaults to the requester's primary assignment")


class ConflictCheckResponse(BaseModel):
    """has_conflict is only conclusive when status is complete"""
    has_conflict: bool
    status: ScanStatus
    items: List[ConflictOut]


class LeaveEventOut(BaseModel):
    leave_request_id: int
    requester_id: int
    requester_name: str
    department_id: int
    department_name: str
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date

    model_config = ConfigDict(from_attributes=True)


class LeaveEventsResponse(BaseModel):
    property_id: int
    start_date: date
    end_date: date
    items: List[LeaveEventOut]
    total: int
