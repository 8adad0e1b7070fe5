"""Tests for reminder settings stored in app_config."""

import pytest
from sqlalchemy import insert

from care_scheduling.models import app_config
from care_scheduling.schemas.reminders import ReminderSettingsUpdate
from care_scheduling.services.config_service import (
    ConfigService,
    parse_enabled,
    parse_lead_time,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, True),
        ("true", True),
        ("", True),
        ("yes", True),
        ("false", False),
        (" FALSE ", False),
    ],
)
def test_parse_enabled(value, expected):
    assert parse_enabled(value) is expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 24),
        ("", 24),
        ("48", 48),
        (" 1 ", 1),
        ("168", 168),
        ("0", 24),
        ("169", 24),
        ("soon", 24),
    ],
)
def test_parse_lead_time(value, expected):
    assert parse_lead_time(value) == expected


@pytest.mark.asyncio
async def test_defaults_when_nothing_stored(db_session):
    reminder_settings = await ConfigService(db_session).get_reminder_settings()

    assert reminder_settings.enabled is True
    assert reminder_settings.lead_time_hours == 24


@pytest.mark.asyncio
async def test_reads_stored_values(db_session):
    await db_session.execute(
        insert(app_config),
        [
            {"key": "enable_appointment_reminders", "value": "false"},
            {"key": "reminder_time", "value": "72"},
        ],
    )
    await db_session.commit()

    reminder_settings = await ConfigService(db_session).get_reminder_settings()

    assert reminder_settings.enabled is False
    assert reminder_settings.lead_time_hours == 72


@pytest.mark.asyncio
async def test_update_inserts_then_updates(db_session):
    service = ConfigService(db_session)

    first = await service.update_reminder_settings(ReminderSettingsUpdate(lead_time_hours=12))
    assert (first.enabled, first.lead_time_hours) == (True, 12)

    second = await service.update_reminder_settings(
        ReminderSettingsUpdate(enabled=False, lead_time_hours=36)
    )
    assert (second.enabled, second.lead_time_hours) == (False, 36)

    values = await service.get_values(["enable_appointment_reminders", "reminder_time"])
    assert values == {"enable_appointment_reminders": "false", "reminder_time": "36"}
