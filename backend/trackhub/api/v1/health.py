"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import ORJSONResponse
from sqlalchemy import text

from trackhub.api.envelope import error, ok

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> ORJSONResponse:
    """Basic health check."""
    settings = request.app.state.settings
    return ok(
        "Service is healthy",
        {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )


@router.get("/health/ready")
async def readiness_check(request: Request) -> ORJSONResponse:
    """Readiness check including database connectivity."""
    checks: dict[str, str] = {}

    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    if all(v == "healthy" for v in checks.values()):
        return ok("Service is ready", {"status": "healthy", "checks": checks})
    return error("Service is not ready", 503, errors=[f"{k}: {v}" for k, v in checks.items()])
