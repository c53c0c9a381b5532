"""
Domain error taxonomy.

Every error is an HTTPException so services can raise them at the point the
rule is checked, exactly like the rest of the codebase raises HTTPException.
The response body is always:

    {"detail": {"error": "<CODE>", "message": "<human text>", ...context}}

Storage errors are never wrapped in these; they surface as 500s without
leaking driver messages.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class CampusOpsError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        headers: Optional[dict[str, str]] = None,
        **context: Any,
    ):
        self.message = message
        self.context = context
        detail = {"error": self.error_code, "message": message, **context}
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class ValidationError(CampusOpsError):
    """Malformed or missing required fields."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class Unauthorized(CampusOpsError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Could not validate credentials", **context: Any):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"}, **context)


class Forbidden(CampusOpsError):
    """Role or ownership check failed."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class NotFound(CampusOpsError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class Conflict(CampusOpsError):
    """Booking window collides with an active booking or the facility cannot be booked."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class InvalidTransition(CampusOpsError):
    """State machine rule violated; usually the client is holding stale state."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_TRANSITION"


class DuplicateResource(CampusOpsError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "ALREADY_EXISTS"
