"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from care_scheduling.config import settings
from care_scheduling.core.redis_client import check_redis_connection
from care_scheduling.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health check including dependencies and the reminder scheduler."""

    database: str
    redis: str
    email: str
    reminder_scheduler: str
    next_reminder_scan: str | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(request: Request) -> DetailedHealthResponse:
    """
    Detailed health check.

    The service is degraded when the database is down. Redis only guards
    against overlapping scans, so its absence is reported but not degrading.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()

    reminder_scheduler = getattr(request.app.state, "reminder_scheduler", None)
    running = reminder_scheduler is not None and reminder_scheduler.is_running
    jobs = reminder_scheduler.get_jobs_info() if running else []

    return DetailedHealthResponse(
        status="healthy" if db_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        email="configured" if settings.resend_api_key else "not_configured",
        reminder_scheduler="running" if running else "stopped",
        next_reminder_scan=jobs[0]["next_run"] if jobs else None,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
