"""
Database models
"""
from leave_scope.models.property import Property
from leave_scope.models.department import Department
from leave_scope.models.principal import Principal, RoleGrant, Role, ROLE_RANK
from leave_scope.models.principal_property import PrincipalProperty
from leave_scope.models.principal_department import PrincipalDepartment
from leave_scope.models.audit_log import AuditLog
from leave_scope.models.leave import (
    LeaveRequest,
    LeaveType,
    LeaveStatus,
    LeaveAction,
    LEAVE_TRANSITIONS,
    TERMINAL_LEAVE_STATUSES,
)
from leave_scope.models.notification import NotificationIntent

__all__ = [
    "Property",
    "Department",
    "Principal",
    "RoleGrant",
    "Role",
    "ROLE_RANK",
    "PrincipalProperty",
    "PrincipalDepartment",
    "AuditLog",
    "LeaveRequest",
    "LeaveType",
    "LeaveStatus",
    "LeaveAction",
    "LEAVE_TRANSITIONS",
    "TERMINAL_LEAVE_STATUSES",
    "NotificationIntent",
]
