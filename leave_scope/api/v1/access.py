"""
Access decision endpoint
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from leave_scope.core.deps import get_db, get_current_principal
from leave_scope.models.principal import Principal
from leave_scope.schemas.access import ApprovalDecisionOut
from leave_scope.services.leave_service import resolve_access_for

router = APIRouter()


@router.get("/resolve", response_model=ApprovalDecisionOut)
async def resolve_access_endpoint(
    property_id: Optional[int] = Query(None, description="Property of the target record"),
    department_id: Optional[int] = Query(None, description="Department of the target record"),
    requester_id: Optional[int] = Query(None, description="Requester of the target record"),
    db: Session = Depends(get_db),
    current_principal: Principal = Depends(get_current_principal),
):
    """
    What the current principal may do with a record in the given scope

    Computed fresh on every call; nothing is cached.
    """
    return resolve_access_for(
        db,
        principal_id=current_principal.id,
        property_id=property_id,
        department_id=department_id,
        requester_id=requester_id,
    )
