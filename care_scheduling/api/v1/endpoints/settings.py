"""Operator settings endpoints."""

from fastapi import APIRouter, status

from care_scheduling.dependencies import DatabaseSession
from care_scheduling.schemas.reminders import ReminderSettings, ReminderSettingsUpdate
from care_scheduling.services.config_service import ConfigService

router = APIRouter()


@router.get(
    "/reminders",
    response_model=ReminderSettings,
    status_code=status.HTTP_200_OK,
    tags=["Settings"],
    summary="Get reminder settings",
)
async def get_reminder_settings(db: DatabaseSession) -> ReminderSettings:
    """Current reminder switch and lead time."""
    return await ConfigService(db).get_reminder_settings()


@router.put(
    "/reminders",
    response_model=ReminderSettings,
    status_code=status.HTTP_200_OK,
    tags=["Settings"],
    summary="Update reminder settings",
)
async def update_reminder_settings(
    data: ReminderSettingsUpdate,
    db: DatabaseSession,
) -> ReminderSettings:
    """
    Turn reminders on or off or change the lead time.

    Takes effect on the next scan.

    Args:
        data: Fields to change
        db: Database session

    Returns:
        Settings after the update
    """
    return await ConfigService(db).update_reminder_settings(data)
