"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from src.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])

REQUIRED_SERVICES = ("catalog_service", "progress_service", "session_registry")


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Readiness check: the engine and its stores are wired.

    Returns 503 until the catalog, progress store and session registry are
    available on app state.
    """
    settings = get_settings()
    services = {
        name: getattr(request.app.state, name, None) is not None
        for name in REQUIRED_SERVICES
    }
    ready = all(services.values())
    registry = getattr(request.app.state, "session_registry", None)

    return ORJSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "environment": settings.environment,
            "services": services,
            "open_sessions": len(registry) if registry is not None else 0,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
