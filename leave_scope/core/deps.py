"""
Dependencies for FastAPI endpoints
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from leave_scope.core.security import decode_token
from leave_scope.db.session import get_db
from leave_scope.models.principal import Principal
from leave_scope.services.record_store import RecordStore


security = HTTPBearer()


def _credentials_error(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Principal:
    """
    Get the acting principal from the bearer token subject

    The subject is the only identity a request can act as.
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
        sub_value = payload.get("sub")
        if sub_value is None:
            raise _credentials_error()
        # Convert string sub back to integer
        principal_id: int = int(sub_value)
    except (ValueError, TypeError):
        raise _credentials_error()

    principal = RecordStore(db).get_principal(principal_id)
    if principal is None:
        raise _credentials_error("Principal not found")

    if not principal.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive principal"
        )

    return principal
