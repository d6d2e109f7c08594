"""Authentication API endpoints.

Provides routes for:
- User registration (with company invitation linking)
- Login
- Current user profile
"""

from fastapi import APIRouter, status

from src.auth.dependencies import AuthServiceDep, CurrentUser, handle_auth_error
from src.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from src.auth.service import AuthError, UserNotFoundError
from src.companies.dependencies import CompanyServiceDep
from src.config.settings import get_settings
from src.core.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        409: {"description": "Email already registered"},
        422: {"description": "Validation error"},
    },
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
    company_service: CompanyServiceDep,
) -> RegisterResponse:
    """Register a new user account.

    If a pending company invitation exists for the e-mail, the user joins
    that company right away. Linking never fails the registration.
    """
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e

    company_link = await company_service.link_employee_by_email(user.id, user.email)
    if company_link.linked:
        # Role and company changed; re-read so the token carries them
        user = await auth_service.get_user_by_id(user.id) or user
    elif company_link.message != "No pending invite found":
        logger.warning(
            "registration_company_link_failed",
            user_id=str(user.id),
            reason=company_link.message,
        )

    access_token = await auth_service.create_token(user)
    return RegisterResponse(
        user=auth_service.to_response(user),
        access_token=access_token,
        company_link=company_link,
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User login",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Account inactive"},
    },
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    """Authenticate user and return an access token."""
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e

    access_token = await auth_service.create_token(user)
    return TokenResponse(
        access_token=access_token,
        expires_in=get_settings().auth_access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    auth_service: AuthServiceDep,
    current_user: CurrentUser,
) -> UserResponse:
    """Get the current user's profile."""
    user = await auth_service.get_user_by_id(current_user.id)
    if not user:
        raise handle_auth_error(UserNotFoundError())
    return auth_service.to_response(user)
