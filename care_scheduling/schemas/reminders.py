"""Reminder scan schemas."""

from pydantic import BaseModel, Field

MIN_LEAD_TIME_HOURS = 1
MAX_LEAD_TIME_HOURS = 168
DEFAULT_LEAD_TIME_HOURS = 24


class ReminderSettings(BaseModel):
    """Runtime reminder configuration, fetched once per scan."""

    enabled: bool = True
    lead_time_hours: int = Field(
        default=DEFAULT_LEAD_TIME_HOURS,
        ge=MIN_LEAD_TIME_HOURS,
        le=MAX_LEAD_TIME_HOURS,
    )


class ReminderSettingsUpdate(BaseModel):
    """Partial update of the reminder configuration."""

    enabled: bool | None = None
    lead_time_hours: int | None = Field(
        default=None,
        ge=MIN_LEAD_TIME_HOURS,
        le=MAX_LEAD_TIME_HOURS,
    )


class ReminderScanResult(BaseModel):
    """Aggregated outcome of one reminder scan."""

    sent: int = 0
    failed: int = 0
    skipped: int = 0
    enabled: bool = True
