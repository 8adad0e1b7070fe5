import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4
from zoneinfo import ZoneInfo

# Settings are read at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["CLINIC_TIMEZONE"] = "America/Chicago"
os.environ["LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from care_scheduling.core.email_sender import get_email_sender
from care_scheduling.core.exceptions import DependencyException
from care_scheduling.core.redis_client import get_redis_client
from care_scheduling.database import get_db, get_session_factory
from care_scheduling.main import app
from care_scheduling.models import appointments, metadata, provider_referrals, visit_requests
from care_scheduling.services.notification_service import NotificationService

CLINIC_TZ = ZoneInfo("America/Chicago")

# Fixed scan instant: 2026-10-19 08:00 in the clinic's timezone
NOW = datetime(2026, 10, 19, 13, 0, tzinfo=UTC)


class FakeEmailSender:
    """Records sends; fails for chosen recipients."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.failing: set[str] = set()
        self.fail_all = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail_all or to in self.failing:
            raise DependencyException("Email provider error: 500 upstream unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})

    def sent_to(self, address: str) -> list[dict[str, str]]:
        return [message for message in self.sent if message["to"] == address]


def local_slot(now: datetime, hours_ahead: float) -> tuple[date, time]:
    """Clinic-local date and time that lies hours_ahead after now."""
    starts_at = (now + timedelta(hours=hours_ahead)).astimezone(CLINIC_TZ)
    return starts_at.date(), starts_at.time().replace(second=0, microsecond=0, tzinfo=None)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test SQLite database file."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'scheduling.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def notifier(email_sender: FakeEmailSender) -> NotificationService:
    return NotificationService(email_sender, "Compassionate Care")


@pytest.fixture
def redis_mock() -> MagicMock:
    """Redis client whose lock is always free."""
    mock_redis = MagicMock()
    mock_redis.set.return_value = True
    mock_redis.eval.return_value = 1
    return mock_redis


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: FakeEmailSender,
    redis_mock: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_redis_client] = lambda: redis_mock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_appointment(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Insert an appointment row directly, bypassing the conflict check."""

    async def _make(**overrides: Any) -> dict[str, Any]:
        values = {
            "id": uuid4(),
            "patient_name": "Maria Lopez",
            "patient_phone": "555-201-3344",
            "patient_email": "maria@example.com",
            "appointment_date": date(2026, 10, 20),
            "appointment_time": time(9, 0),
            "duration_minutes": 60,
            "clinician": "J. Thompson",
            "location": "in-home",
            "address": "12 Oak Street",
            "status": "scheduled",
            "reminder_sent": False,
        }
        values.update(overrides)

        async with session_factory() as session:
            await session.execute(insert(appointments).values(**values))
            await session.commit()
        return values

    return _make


@pytest.fixture
def make_visit_request(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Insert a visit request submission."""

    async def _make(**overrides: Any) -> dict[str, Any]:
        values = {
            "id": uuid4(),
            "patient_name": "Walter Green",
            "phone": "555-987-6543",
            "email": "walter@example.com",
            "address": "48 Pine Avenue",
            "wound_type": "diabetic ulcer",
            "status": "pending",
        }
        values.update(overrides)

        async with session_factory() as session:
            await session.execute(insert(visit_requests).values(**values))
            await session.commit()
        return values

    return _make


@pytest.fixture
def make_referral(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Insert a provider referral submission."""

    async def _make(**overrides: Any) -> dict[str, Any]:
        values = {
            "id": uuid4(),
            "provider_name": "Dr. Amy Chen",
            "provider_organization": "Riverside Family Medicine",
            "provider_email": "achen@riverside.example",
            "provider_phone": "555-300-1000",
            "patient_name": "Harold King",
            "patient_phone": "555-444-0102",
            "patient_email": "harold@example.com",
            "patient_address": "7 Elm Court",
            "urgency": "urgent",
            "status": "pending",
        }
        values.update(overrides)

        async with session_factory() as session:
            await session.execute(insert(provider_referrals).values(**values))
            await session.commit()
        return values

    return _make
