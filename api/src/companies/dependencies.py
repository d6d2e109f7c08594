"""FastAPI dependencies for company management."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.errors import to_http_exception

from .service import CompanyError, CompanyService


async def get_company_service(request: Request) -> CompanyService:
    """Get CompanyService from app state."""
    service = getattr(request.app.state, "company_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Company service not available",
        )
    return service


CompanyServiceDep = Annotated[CompanyService, Depends(get_company_service)]


def handle_company_error(error: CompanyError) -> HTTPException:
    """Convert CompanyError to HTTPException."""
    return to_http_exception(error)
