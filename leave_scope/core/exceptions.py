"""
Domain exceptions raised by the resolver, state machine, analyzer and record store.

Services raise these instead of HTTPException so the same functions can be
called from the API layer, jobs, or tests. leave_scope.core.errors maps
them to HTTP responses.
"""
from typing import Optional


class LeaveScopeError(Exception):
    """Base class for all domain errors"""

    code = "error"
    status_code = 500
    retryable = False

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail()
        super().__init__(self.detail)

    def default_detail(self) -> str:
        return "Unexpected error"


class ValidationError(LeaveScopeError):
    """Malformed input. Raised before any store access."""

    code = "validation_error"
    status_code = 400

    def default_detail(self) -> str:
        return "Invalid input"


class AuthorizationError(LeaveScopeError):
    """The resolver denied the operation.

    The message never says why, so error text reveals nothing about
    another principal's data.
    """

    code = "not_authorized"
    status_code = 403

    def __init__(self, detail: Optional[str] = None):
        super().__init__("Not authorized")
        # Kept for server-side logs only
        self.internal_detail = detail


class NotFoundError(LeaveScopeError):
    code = "not_found"
    status_code = 404

    def default_detail(self) -> str:
        return "Not found"


class ConflictError(LeaveScopeError):
    """Lost the compare-and-swap on status. Re-fetch before retrying."""

    code = "conflict"
    status_code = 409

    def default_detail(self) -> str:
        return "Leave request is no longer pending"


class StoreUnavailableError(LeaveScopeError):
    """The record store timed out or could not be reached."""

    code = "store_unavailable"
    status_code = 503
    retryable = True

    def default_detail(self) -> str:
        return "Record store unavailable, retry later"
