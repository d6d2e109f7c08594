"""Elira API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.auth.router import router as auth_router
from src.auth.service import AuthService
from src.billing.client import create_stripe_client
from src.billing.router import router as billing_router
from src.billing.service import BillingService
from src.catalog.router import router as catalog_router
from src.catalog.service import CatalogService
from src.companies.router import router as companies_router
from src.companies.service import CompanyService
from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.errors import INTERNAL, ServiceError, to_http_exception
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware, route_template
from src.email.service import EmailService
from src.health import router as health_router
from src.progress.router import router as progress_router
from src.progress.service import ProgressService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def _create_email_service() -> EmailService | None:
    if not settings.email_configured:
        logger.info("email_service_disabled")
        return None
    try:
        service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
            reply_to=settings.email_reply_to,
        )
    except Exception as e:
        logger.warning(
            "email_service_init_skipped",
            error=str(e),
            message="Running without email service",
        )
        return None
    logger.info("email_service_initialized", sender=settings.email_sender_address)
    return service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Services are created once and stored on ``app.state`` for the
    ``get_*_service`` dependencies.
    """
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    email_service = _create_email_service()
    stripe_client = create_stripe_client(settings)

    try:
        session = await init_async_cassandra()
        keyspace = settings.cassandra_keyspace
        app.state.cassandra_session = session

        auth_service = AuthService(session=session, keyspace=keyspace)
        catalog_service = CatalogService(session=session, keyspace=keyspace)
        progress_service = ProgressService(
            session=session,
            keyspace=keyspace,
            catalog_service=catalog_service,
            completion_threshold=settings.lesson_completion_threshold,
        )
        company_service = CompanyService(
            session=session,
            keyspace=keyspace,
            settings=settings,
            auth_service=auth_service,
            progress_service=progress_service,
            catalog_service=catalog_service,
            email_service=email_service,
        )
        billing_service = BillingService(
            session=session,
            keyspace=keyspace,
            settings=settings,
            stripe_client=stripe_client,
            auth_service=auth_service,
            catalog_service=catalog_service,
            progress_service=progress_service,
        )

        app.state.auth_service = auth_service
        app.state.catalog_service = catalog_service
        app.state.progress_service = progress_service
        app.state.company_service = company_service
        app.state.billing_service = billing_service
        logger.info("services_initialized", stripe_enabled=stripe_client is not None)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


# ==============================================================================
# Error envelope
# ==============================================================================


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    code: str | None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    """``{error, message, code, status_code, request_id}``.

    Messages of 5xx responses never reach the client.
    """
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        message = "Internal server error"
        code = code or INTERNAL
    return ORJSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "code": code,
            "status_code": status_code,
            "request_id": getattr(request.state, "request_id", None) or get_request_id(),
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> ORJSONResponse:
        """Domain errors that reached the app without a router mapping."""
        http_exc = to_http_exception(exc)
        logger.warning(
            "service_error",
            error_type=type(exc).__name__,
            code=exc.code,
            path=route_template(request),
        )
        return _error_response(request, http_exc.status_code, exc.message, exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        # Service errors arrive with a {"message", "code"} detail
        detail: Any = exc.detail
        if isinstance(detail, dict):
            message, code = detail.get("message", "Error"), detail.get("code")
        else:
            message, code = str(detail), None

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            code=code,
            detail=message,
            method=request.method,
            path=route_template(request),
        )
        return _error_response(
            request, exc.status_code, message, code, getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        details = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning(
            "validation_error",
            fields=[d["field"] for d in details],
            path=route_template(request),
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "success": False,
                "error": "Validation error",
                "status_code": 422,
                "request_id": getattr(request.state, "request_id", None) or get_request_id(),
                "details": details,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            method=request.method,
            path=route_template(request),
        )
        return _error_response(
            request, status.HTTP_500_INTERNAL_SERVER_ERROR, "", INTERNAL
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    # debug=False: stack traces are logged, never returned
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Elira learning platform - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        slow_request_ms=settings.log_slow_request_ms,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(progress_router)
    app.include_router(companies_router)
    app.include_router(billing_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "Elira API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
