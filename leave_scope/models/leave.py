"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Enum as SQLEnum,
    Boolean,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leave_scope.db.base import Base


class LeaveType(str, enum.Enum):
    ANNUAL = "annual"
    SICK = "sick"
    UNPAID = "unpaid"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    PERSONAL = "personal"
    OTHER = "other"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


# Statuses that never transition again; only the soft-delete flag may change
TERMINAL_LEAVE_STATUSES = frozenset({
    LeaveStatus.APPROVED,
    LeaveStatus.REJECTED,
    LeaveStatus.CANCELLED,
})

# The whole state machine: (current status, action) -> next status
LEAVE_TRANSITIONS = {
    (LeaveStatus.PENDING, LeaveAction.APPROVE): LeaveStatus.APPROVED,
    (LeaveStatus.PENDING, LeaveAction.REJECT): LeaveStatus.REJECTED,
    (LeaveStatus.PENDING, LeaveAction.CANCEL): LeaveStatus.CANCELLED,
}


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("principals.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    leave_type = Column(SQLEnum(LeaveType, name="leavetype", values_callable=_enum_values), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(
        SQLEnum(LeaveStatus, name="leavestatus", values_callable=_enum_values),
        nullable=False,
        default=LeaveStatus.PENDING,
        server_default=text("'pending'"),
    )
    approved_by_id = Column(Integer, ForeignKey("principals.id"), nullable=True, index=True)
    rejected_by_id = Column(Integer, ForeignKey("principals.id"), nullable=True, index=True)
    rejection_reason = Column(Text, nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("principals.id"), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    deleted_by_id = Column(Integer, ForeignKey("principals.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)

    # Relationships
    requester = relationship("Principal", foreign_keys=[requester_id])
    approved_by = relationship("Principal", foreign_keys=[approved_by_id])
    rejected_by = relationship("Principal", foreign_keys=[rejected_by_id])
    property = relationship("Property")
    department = relationship("Department")

    __table_args__ = (
        Index('ix_leave_requests_property_dates', 'property_id', 'start_date', 'end_date'),
        Index('ix_leave_requests_requester_dates', 'requester_id', 'start_date', 'end_date'),
        CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )
