"""API v1 router configuration."""

from fastapi import APIRouter

from care_scheduling.api.v1.endpoints import (
    appointments,
    health,
    reminders,
    settings,
    submissions,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
api_router.include_router(reminders.router, prefix="/reminders", tags=["Reminders"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
