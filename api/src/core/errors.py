"""Shared service error base and HTTP mapping.

Every domain module raises subclasses of ``ServiceError`` carrying a kind
code. Routers convert them with ``to_http_exception`` (wrapped by each
module's ``handle_*_error`` helper).
"""

from fastapi import HTTPException, status


UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"
PERMISSION_DENIED = "permission-denied"
NOT_FOUND = "not-found"
ALREADY_EXISTS = "already-exists"
FAILED_PRECONDITION = "failed-precondition"
INTERNAL = "internal"


ERROR_STATUS_MAP: dict[str, int] = {
    UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    INVALID_ARGUMENT: status.HTTP_400_BAD_REQUEST,
    PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    FAILED_PRECONDITION: status.HTTP_400_BAD_REQUEST,
    INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceError(Exception):
    """Base caller-facing error with a kind code."""

    def __init__(self, message: str, code: str = INTERNAL):
        self.message = message
        self.code = code
        super().__init__(message)


def to_http_exception(error: ServiceError) -> HTTPException:
    """Convert a ServiceError to an HTTPException with structured detail."""
    status_code = ERROR_STATUS_MAP.get(
        error.code, status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return HTTPException(
        status_code=status_code,
        detail={"message": error.message, "code": error.code},
    )
