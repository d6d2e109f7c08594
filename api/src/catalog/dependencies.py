"""FastAPI dependencies for the course catalog."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.catalog.service import CatalogError, CatalogService
from src.core.errors import to_http_exception


async def get_catalog_service(request: Request) -> CatalogService:
    """Get CatalogService from app state."""
    service = getattr(request.app.state, "catalog_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog service not available",
        )
    return service


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


def handle_catalog_error(error: CatalogError) -> HTTPException:
    """Convert CatalogError to HTTPException."""
    return to_http_exception(error)
