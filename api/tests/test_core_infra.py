"""Tests for core infrastructure: context, middleware, settings and errors."""

from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import ValidationError

from src.config.settings import DEV_AUTH_SECRET_KEY, Settings
from src.core.context import (
    clear_context,
    get_context,
    set_identity,
    set_request_id,
    stripe_event_context,
)
from src.core.database import keyspace_cql
from src.core.errors import NOT_FOUND, ServiceError
from src.core.logging import filter_sensitive_data
from src.core.middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from src.main import register_exception_handlers


# ==============================================================================
# Context
# ==============================================================================


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_empty_context(self):
        assert get_context() == {}

    def test_generates_request_id(self):
        rid = set_request_id()
        assert rid
        assert get_context() == {"request_id": rid}

    def test_keeps_incoming_request_id(self):
        assert set_request_id("req-1") == "req-1"

    def test_identity_with_company(self):
        user_id, company_id = uuid4(), uuid4()
        set_identity(user_id, company_id)

        assert get_context() == {"user_id": str(user_id), "company_id": str(company_id)}

    def test_identity_without_company(self):
        user_id = uuid4()
        set_identity(user_id)

        assert get_context() == {"user_id": str(user_id)}

    def test_stripe_event_is_scoped(self):
        set_request_id("req-2")
        with stripe_event_context("evt_123"):
            assert get_context()["stripe_event_id"] == "evt_123"
        assert "stripe_event_id" not in get_context()
        assert get_context()["request_id"] == "req-2"

    def test_clear(self):
        set_request_id("req-3")
        set_identity(uuid4(), uuid4())
        clear_context()
        assert get_context() == {}


# ==============================================================================
# Middleware
# ==============================================================================


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, exclude_paths=["/health"])

    @app.get("/items/{item_id}")
    async def item(item_id: str) -> dict[str, str]:
        return {"id": item_id}

    return app


class TestRequestContextMiddleware:
    def test_echoes_incoming_request_id(self):
        response = TestClient(_app()).get("/items/1", headers={REQUEST_ID_HEADER: "abc"})

        assert response.status_code == 200
        assert response.headers[REQUEST_ID_HEADER] == "abc"

    def test_generates_request_id(self):
        response = TestClient(_app()).get("/items/1")
        assert response.headers[REQUEST_ID_HEADER]

    def test_context_cleared_after_request(self):
        TestClient(_app()).get("/items/1", headers={REQUEST_ID_HEADER: "abc"})
        assert get_context() == {}


# ==============================================================================
# Settings
# ==============================================================================


class TestSettingsValidation:
    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(auth_secret_key="short")

    def test_dev_secret_rejected_in_production(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET_KEY"):
            Settings(environment="production", auth_secret_key=DEV_AUTH_SECRET_KEY)

    def test_production_stripe_requires_webhook_secret(self):
        with pytest.raises(ValidationError, match="STRIPE_WEBHOOK_SECRET"):
            Settings(
                environment="production",
                auth_secret_key="x" * 40,
                stripe_secret_key="sk_live_123",
            )

    def test_production_ok(self):
        settings = Settings(
            environment="production",
            auth_secret_key="x" * 40,
            stripe_secret_key="sk_live_123",
            stripe_webhook_secret="whsec_123",
        )
        assert settings.is_production
        assert settings.stripe_configured


# ==============================================================================
# Keyspace
# ==============================================================================


class TestKeyspaceCql:
    def test_simple_strategy_by_default(self):
        cql = keyspace_cql(Settings(cassandra_keyspace="elira_test"))

        assert cql.startswith("CREATE KEYSPACE IF NOT EXISTS elira_test ")
        assert "'class': 'SimpleStrategy', 'replication_factor': 1" in cql

    def test_network_topology_with_local_dc(self):
        cql = keyspace_cql(
            Settings(cassandra_local_dc="eu-central", cassandra_replication_factor=3)
        )
        assert "'class': 'NetworkTopologyStrategy', 'eu-central': 3" in cql


# ==============================================================================
# Log masking
# ==============================================================================


class TestSensitiveDataFilter:
    def test_masks_email_fields(self):
        event = filter_sensitive_data(
            None, "info", {"event": "employee_invited", "employee_email": "anna.kiss@acme.hu"}
        )
        assert event["employee_email"] == "an***@acme.hu"

    def test_masks_secrets(self):
        event = filter_sensitive_data(None, "info", {"invite_token": "abcdef123456"})
        assert event["invite_token"] == "ab********56"

    def test_leaves_other_fields(self):
        event = filter_sensitive_data(None, "info", {"event": "x", "company_id": "c-1"})
        assert event == {"event": "x", "company_id": "c-1"}


# ==============================================================================
# Error envelope
# ==============================================================================


class NoSuchCourseError(ServiceError):
    def __init__(self):
        super().__init__("Course not found", NOT_FOUND)


def _failing_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/service-error")
    async def service_error() -> None:
        raise NoSuchCourseError

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("secret internals")

    return app


class TestErrorEnvelope:
    def test_unmapped_service_error(self):
        response = TestClient(_failing_app()).get("/service-error")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] is True
        assert body["message"] == "Course not found"
        assert body["code"] == "not-found"

    def test_unhandled_error_hides_details(self):
        client = TestClient(_failing_app(), raise_server_exceptions=False)

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"
        assert response.json()["code"] == "internal"
        assert "secret" not in response.text
