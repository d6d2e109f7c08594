"""FastAPI dependencies for authentication.

Provides dependency injection for:
- AuthService from app state
- Current user extraction from JWT (claims: role, company_id)
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from src.auth.permissions import UserRole, has_permission
from src.auth.schemas import UserResponse
from src.auth.security import decode_access_token
from src.auth.service import AuthError, AuthService
from src.core.context import set_identity
from src.core.errors import PERMISSION_DENIED, UNAUTHENTICATED, to_http_exception


# ==============================================================================
# Service Dependency
# ==============================================================================


async def get_auth_service(request: Request) -> AuthService:
    """Get AuthService from app state."""
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth service not available",
        )
    return service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    return to_http_exception(error)


# ==============================================================================
# Current User
# ==============================================================================


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        return None

    return parts[1]


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": message, "code": UNAUTHENTICATED},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get current authenticated user from the JWT access token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise _unauthenticated("Authentication required")

    try:
        claims = decode_access_token(token)
        user = UserResponse(
            id=claims.user_id,
            email=claims.email,
            role=claims.role,
            company_id=claims.company_id,
        )
    except (JWTError, ValueError) as e:
        raise _unauthenticated("Invalid or expired token") from e

    set_identity(user.id, user.company_id)
    return user


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring one of the given roles (exact match)."""

    async def role_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Insufficient permissions", "code": PERMISSION_DENIED},
            )
        return user

    return role_checker


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level."""

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Insufficient permissions", "code": PERMISSION_DENIED},
            )
        return user

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
AdminUser = Annotated[UserResponse, Depends(require_role(UserRole.ADMIN))]
InstructorUser = Annotated[UserResponse, Depends(require_permission(UserRole.INSTRUCTOR))]
