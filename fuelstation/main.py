"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fuelstation.api.routes import health, pumps, readings, tanks
from fuelstation.core.config import settings
from fuelstation.core.database import Base, engine
from fuelstation.core.logging_config import setup_logging

# Import models for Base.metadata.create_all - order matters for foreign keys
from fuelstation.models import (
    fuel_type,  # noqa: F401
    inventory,  # noqa: F401
    meter_reading,  # noqa: F401
    nozzle,  # noqa: F401
    pump,  # noqa: F401
    tank,  # noqa: F401
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    # Startup: Create database tables
    Base.metadata.create_all(bind=engine)
    yield
    # Shutdown: cleanup if needed


setup_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Meter reading verification and tank inventory reconciliation",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(tanks.router, prefix="/api")
app.include_router(pumps.router, prefix="/api")
app.include_router(readings.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fuelstation.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
