"""Runtime configuration stored in the app_config key/value table."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.models.app_config import app_config
from care_scheduling.schemas.reminders import (
    DEFAULT_LEAD_TIME_HOURS,
    MAX_LEAD_TIME_HOURS,
    MIN_LEAD_TIME_HOURS,
    ReminderSettings,
    ReminderSettingsUpdate,
)

logger = structlog.get_logger(__name__)

REMINDERS_ENABLED_KEY = "enable_appointment_reminders"
REMINDER_LEAD_TIME_KEY = "reminder_time"


def parse_enabled(value: str | None) -> bool:
    """Reminders stay on unless the stored value is literally 'false'."""
    if value is None:
        return True
    return value.strip().lower() != "false"


def parse_lead_time(value: str | None) -> int:
    """Parse the lead time in hours, falling back to the default when invalid."""
    if value is None or not value.strip():
        return DEFAULT_LEAD_TIME_HOURS

    try:
        hours = int(value.strip())
    except ValueError:
        logger.warning("invalid_reminder_lead_time", value=value)
        return DEFAULT_LEAD_TIME_HOURS

    if not MIN_LEAD_TIME_HOURS <= hours <= MAX_LEAD_TIME_HOURS:
        logger.warning("reminder_lead_time_out_of_range", value=hours)
        return DEFAULT_LEAD_TIME_HOURS

    return hours


class ConfigService:
    """Service for reading and writing operator-adjustable settings."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_values(self, keys: list[str]) -> dict[str, str | None]:
        """Fetch the stored values for the given keys."""
        result = await self.db.execute(
            select(app_config.c.key, app_config.c.value).where(app_config.c.key.in_(keys))
        )
        return {row.key: row.value for row in result.fetchall()}

    async def set_value(self, key: str, value: str) -> None:
        """Insert or update one key without committing."""
        result = await self.db.execute(
            update(app_config)
            .where(app_config.c.key == key)
            .values(value=value, updated_at=datetime.now(UTC))
        )
        if result.rowcount == 0:
            await self.db.execute(insert(app_config).values(key=key, value=value))

    async def get_reminder_settings(self) -> ReminderSettings:
        """
        Read the reminder configuration.

        Called once at the start of every scan so operators can change it
        without a redeploy.

        Returns:
            Current reminder settings
        """
        values = await self.get_values([REMINDERS_ENABLED_KEY, REMINDER_LEAD_TIME_KEY])
        return ReminderSettings(
            enabled=parse_enabled(values.get(REMINDERS_ENABLED_KEY)),
            lead_time_hours=parse_lead_time(values.get(REMINDER_LEAD_TIME_KEY)),
        )

    async def update_reminder_settings(self, data: ReminderSettingsUpdate) -> ReminderSettings:
        """
        Update the reminder configuration.

        Args:
            data: Fields to change

        Returns:
            Settings after the update
        """
        if data.enabled is not None:
            await self.set_value(REMINDERS_ENABLED_KEY, "true" if data.enabled else "false")

        if data.lead_time_hours is not None:
            await self.set_value(REMINDER_LEAD_TIME_KEY, str(data.lead_time_hours))

        await self.db.commit()

        reminder_settings = await self.get_reminder_settings()
        logger.info(
            "reminder_settings_updated",
            enabled=reminder_settings.enabled,
            lead_time_hours=reminder_settings.lead_time_hours,
        )
        return reminder_settings
