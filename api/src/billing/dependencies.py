"""FastAPI dependencies for billing.

Provides dependency injection for:
- Billing service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.errors import to_http_exception

from .service import BillingError, BillingService


async def get_billing_service(request: Request) -> BillingService:
    """Get billing service from app state."""
    service = getattr(request.app.state, "billing_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Billing service not available",
        )
    return service


BillingServiceDep = Annotated[BillingService, Depends(get_billing_service)]


def handle_billing_error(error: BillingError) -> HTTPException:
    """Convert billing errors to HTTP exceptions."""
    return to_http_exception(error)
