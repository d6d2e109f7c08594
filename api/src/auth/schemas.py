"""Pydantic schemas for authentication.

Request and response models for:
- User registration and login
- Token responses
- User profile
"""

import re
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from src.auth.permissions import UserRole
from src.companies.schemas import EmployeeLinkResponse
from src.core.schemas import ApiModel


if TYPE_CHECKING:
    from src.auth.models import User


PASSWORD_MIN_LENGTH = 8


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(ApiModel):
    """User registration request."""

    email: EmailStr = Field(..., description="Email address")
    name: str = Field(..., min_length=2, max_length=100, description="Full name")
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, description="Password")

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        if not re.search(r"[A-Za-z]", v) or not re.search(r"\d", v):
            msg = "Password must contain at least one letter and one digit"
            raise ValueError(msg)
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.strip()


class LoginRequest(ApiModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(ApiModel):
    """User data returned by the API (and resolved from access tokens)."""

    id: UUID
    email: str
    name: str = ""
    role: UserRole
    is_active: bool = True
    company_id: UUID | None = None
    company_role: str | None = None
    subscription_status: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "UserResponse":
        """Create response from User entity."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            role=UserRole(user.role),
            is_active=user.is_active,
            company_id=user.company_id,
            company_role=user.company_role,
            subscription_status=user.subscription_status,
            created_at=user.created_at,
        )


class TokenResponse(ApiModel):
    """Access token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class RegisterResponse(ApiModel):
    """Registration result: the new user, a token, and any company link."""

    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    company_link: EmployeeLinkResponse | None = None
