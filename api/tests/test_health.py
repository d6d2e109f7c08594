"""Tests for health endpoints."""

from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient

from src.main import app


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    response = client.get("/health/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] is False
    assert "payments" in data
    assert "environment" in data


def test_readiness_with_database(client: TestClient) -> None:
    session = Mock()
    session.aexecute = AsyncMock()
    app.state.cassandra_session = session

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"
    assert response.json()["database"] is True
    session.aexecute.assert_awaited_once()


def test_readiness_database_unreachable(client: TestClient) -> None:
    session = Mock()
    session.aexecute = AsyncMock(side_effect=RuntimeError("NoHostAvailable"))
    app.state.cassandra_session = session

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] is False


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "elira"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Elira API"
    assert "version" in data
