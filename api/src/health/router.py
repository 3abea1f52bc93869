"""Health check endpoints."""

from fastapi import APIRouter, Request

from src.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])

# app.state attributes that must be present before moderation routes work
REQUIRED_SERVICES = (
    "community_service",
    "report_service",
    "appeal_service",
    "notification_service",
)


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool | dict[str, bool]]:
    """Readiness probe - reports which moderation services are wired.

    The app starts without Cassandra, so a missing service means degraded
    rather than down.
    """
    settings = get_settings()
    services = {
        name: getattr(request.app.state, name, None) is not None
        for name in REQUIRED_SERVICES
    }
    return {
        "status": "ready" if all(services.values()) else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "services": services,
        "live_sessions": getattr(request.app.state, "connection_registry", None)
        is not None,
    }


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
