"""Shared test fixtures."""

from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session
from fastapi.testclient import TestClient

from src.auth.dependencies import get_current_user
from src.auth.permissions import UserRole
from src.auth.schemas import UserResponse
from src.main import app


SERVICE_NAMES = (
    "auth_service",
    "catalog_service",
    "progress_service",
    "company_service",
    "billing_service",
    "cassandra_session",
)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client without lifespan (no database); services are set per test."""
    yield TestClient(app)
    app.dependency_overrides.clear()
    for name in SERVICE_NAMES:
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def mock_session() -> Mock:
    """Cassandra session mock; prepare() returns distinct statement mocks."""
    session = Mock(spec=Session)
    session.prepare.side_effect = lambda query: Mock(name="prepared", query=query)
    # cassandra-asyncio-driver adds aexecute() to the session
    session.aexecute = AsyncMock(return_value=Mock())
    return session


def make_user(
    role: UserRole = UserRole.STUDENT,
    user_id: UUID | None = None,
    email: str = "user@example.com",
    company_id: UUID | None = None,
) -> UserResponse:
    return UserResponse(
        id=user_id or uuid4(),
        email=email,
        role=role,
        company_id=company_id,
    )


@pytest.fixture
def login_as() -> Callable[..., UserResponse]:
    """Authenticate requests as a given user by overriding get_current_user."""

    def _login(role: UserRole = UserRole.STUDENT, **kwargs) -> UserResponse:
        user = make_user(role=role, **kwargs)
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    return _login
