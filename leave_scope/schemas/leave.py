"""
Leave schemas
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_serializer
from pydantic import ConfigDict
from leave_scope.utils.datetime_utils import iso_8601_utc
from leave_scope.models.leave import LeaveType, LeaveStatus


class LeaveSubmitRequest(BaseModel):
    """Schema for submitting leave on one's own behalf"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    start_date: date = Field(..., description="First day of leave (inclusive)")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, description="Reason for leave")
    property_id: Optional[int] = Field(None, description="Defaults to the requester's primary assignment")
    department_id: Optional[int] = Field(None, description="Defaults to the requester's primary assignment")


class RejectActionRequest(BaseModel):
    """Schema for leave rejection request"""
    reason: str = Field(..., description="Reason for rejection (must not be blank)")


class LeaveOut(BaseModel):
    """Schema for leave output"""
    id: int
    requester_id: int
    property_id: Optional[int] = None
    department_id: Optional[int] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    approved_by_id: Optional[int] = Field(None, description="ID of the approver")
    rejected_by_id: Optional[int] = Field(None, description="ID of the rejector")
    rejection_reason: Optional[str] = None
    cancelled_by_id: Optional[int] = Field(None, description="ID of the requester who withdrew it")
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt) if dt is not None else None


class LeaveListResponse(BaseModel):
    """Schema for leave list response"""
    items: List[LeaveOut]
    total: int
