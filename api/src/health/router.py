"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from src.config import get_settings
from src.core.database import ping_cassandra


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness check.

    Returns 503 until the database answers. Stripe and e-mail are reported
    but optional: without them only billing and invitations are degraded.
    """
    settings = get_settings()
    state = request.app.state

    session = getattr(state, "cassandra_session", None)
    database = session is not None and await ping_cassandra(session)
    if not database:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if database else "degraded",
        "database": database,
        "payments": getattr(state, "billing_service", None) is not None
        and settings.stripe_configured,
        "email": settings.email_configured,
        "environment": settings.environment,
    }


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
