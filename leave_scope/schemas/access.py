"""
Access decision schema
"""
from pydantic import BaseModel, ConfigDict

from leave_scope.services.scope_service import AccessScope


class ApprovalDecisionOut(BaseModel):
    can_view: bool
    can_approve: bool
    scope: AccessScope
    reason: str

    model_config = ConfigDict(from_attributes=True)
