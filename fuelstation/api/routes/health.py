"""Health check route."""

from fastapi import APIRouter

from fuelstation.core.config import settings

router = APIRouter()


@router.get("/health")
def health_check() -> dict[str, str]:
    """Report that the service is up."""
    return {"status": "healthy", "service": "fuelstation", "version": settings.VERSION}
