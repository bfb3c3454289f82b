"""
Constants for scope rules, audit actions and coverage thresholds
"""
from leave_scope.models.principal import Role

# Scope rules, strongest first
GLOBAL_SCOPE_ROLES = frozenset({Role.REGIONAL_ADMIN, Role.REGIONAL_HR})
PROPERTY_SCOPE_ROLES = frozenset({Role.PROPERTY_MANAGER, Role.PROPERTY_HR})
DEPARTMENT_SCOPE_ROLES = frozenset({Role.DEPARTMENT_HEAD})

# HR tier: the only roles allowed to soft-delete a leave request
SOFT_DELETE_ROLES = frozenset({Role.REGIONAL_ADMIN, Role.REGIONAL_HR, Role.PROPERTY_HR})

# Listing filter sentinel meaning "no property filter" (global scope only)
ALL_PROPERTIES = "all"

# Conflict rule: flagged when this many are off, or coverage drops below the critical mark
CONFLICT_MIN_STAFF_ON_LEAVE = 2
CRITICAL_COVERAGE_PERCENT = 50
FULL_COVERAGE_PERCENT = 100

# Audit trail
ENTITY_LEAVE_REQUESTS = "leave_requests"
AUDIT_LEAVE_SUBMIT = "LEAVE_SUBMIT"
AUDIT_LEAVE_APPROVE = "LEAVE_APPROVE"
AUDIT_LEAVE_REJECT = "LEAVE_REJECT"
AUDIT_LEAVE_CANCEL = "LEAVE_CANCEL"
AUDIT_LEAVE_SOFT_DELETE = "LEAVE_SOFT_DELETE"

# Notification intents
NOTIFY_LEAVE_APPROVED = "leave_approved"
NOTIFY_LEAVE_REJECTED = "leave_rejected"
