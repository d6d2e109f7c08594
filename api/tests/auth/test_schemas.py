"""Tests for auth schemas."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.auth.models import User
from src.auth.permissions import UserRole
from src.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from src.companies.schemas import EmployeeLinkResponse


class TestRegisterRequest:
    """Tests for RegisterRequest schema."""

    def test_valid_registration(self) -> None:
        data = RegisterRequest(
            email="anna.kiss@example.com",
            name="  Kiss Anna ",
            password="Titkos123",
        )
        assert data.email == "anna.kiss@example.com"
        assert data.name == "Kiss Anna"

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(email="invalid-email", name="Kiss Anna", password="Titkos123")
        assert "email" in str(exc_info.value).lower()

    @pytest.mark.parametrize("password", ["short1", "onlyletters", "12345678"])
    def test_weak_password(self, password: str) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(email="anna.kiss@example.com", name="Kiss Anna", password=password)

    def test_short_name(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(email="anna.kiss@example.com", name="A", password="Titkos123")


class TestLoginRequest:
    def test_valid_login(self) -> None:
        data = LoginRequest(email="anna.kiss@example.com", password="anything")
        assert data.password == "anything"


class TestUserResponse:
    def test_from_user(self) -> None:
        company_id = uuid4()
        user = User(
            id=uuid4(),
            email="anna.kiss@example.com",
            name="Kiss Anna",
            role="company_employee",
            company_id=company_id,
            company_role="employee",
            subscription_status="active",
            created_at=datetime(2025, 1, 1, tzinfo=UTC),
        )

        response = UserResponse.from_user(user)

        assert response.role == UserRole.COMPANY_EMPLOYEE
        assert response.company_id == company_id
        assert response.subscription_status == "active"

    def test_serializes_camel_case(self) -> None:
        response = UserResponse(
            id=uuid4(),
            email="anna.kiss@example.com",
            role=UserRole.STUDENT,
        )

        data = response.model_dump(by_alias=True)

        assert "companyId" in data
        assert "isActive" in data
        assert "company_id" not in data


class TestTokenResponses:
    def test_token_defaults(self) -> None:
        token = TokenResponse(access_token="abc", expires_in=3600)
        assert token.token_type == "bearer"
        assert token.model_dump(by_alias=True)["accessToken"] == "abc"

    def test_register_response_with_company_link(self) -> None:
        user = UserResponse(id=uuid4(), email="anna.kiss@example.com", role=UserRole.STUDENT)
        response = RegisterResponse(
            user=user,
            access_token="abc",
            company_link=EmployeeLinkResponse(
                linked=False, message="No pending invite found"
            ),
        )

        data = response.model_dump(by_alias=True)

        assert data["companyLink"]["linked"] is False
        assert data["tokenType"] == "bearer"
