"""Reminder scan job: emails patients ahead of their scheduled appointments."""

import asyncio
import time as timer
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from care_scheduling.config import settings
from care_scheduling.core.exceptions import DependencyException
from care_scheduling.core.metrics import (
    REMINDER_SCAN_DURATION,
    REMINDERS_FAILED,
    REMINDERS_SENT,
)
from care_scheduling.schemas.notifications import EmailEvent
from care_scheduling.schemas.reminders import ReminderScanResult, ReminderSettings
from care_scheduling.services.appointment_store import AppointmentStore
from care_scheduling.services.config_service import ConfigService
from care_scheduling.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

SENT = "sent"
FAILED = "failed"
SKIPPED = "skipped"


def _as_utc(now: datetime) -> datetime:
    # Naive instants are taken to be UTC
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


class ReminderScanJob:
    """
    One pass over upcoming appointments, sending due reminders.

    Each appointment is handled in its own task with its own session, so one
    failing send neither blocks nor rolls back the others. A reminder is
    claimed before sending and marked sent afterwards with conditional
    updates, which keeps overlapping scans from emailing a patient twice.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: NotificationService,
        clinic_timezone: str | ZoneInfo = "America/Chicago",
        concurrency: int = 5,
        claim_ttl_seconds: int = 600,
    ):
        """
        Initialize job.

        Args:
            session_factory: Factory for per-task database sessions
            notifier: Renders and sends the reminder emails
            clinic_timezone: Timezone appointment dates and times are expressed in
            concurrency: Maximum number of reminders in flight
            claim_ttl_seconds: Age after which an unfinished claim may be retaken
        """
        self.session_factory = session_factory
        self.notifier = notifier
        self.clinic_tz = (
            clinic_timezone if isinstance(clinic_timezone, ZoneInfo) else ZoneInfo(clinic_timezone)
        )
        self.concurrency = max(1, concurrency)
        self.claim_ttl_seconds = claim_ttl_seconds

    def hours_until(self, appointment: dict[str, Any], now: datetime) -> float:
        """Hours from now until the appointment starts, negative once it has."""
        starts_at = datetime.combine(
            appointment["appointment_date"],
            appointment["appointment_time"],
            tzinfo=self.clinic_tz,
        )
        return (starts_at - _as_utc(now)).total_seconds() / 3600

    async def run(self, now: datetime, reminder_settings: ReminderSettings) -> ReminderScanResult:
        """
        Send every reminder that is due at the given instant.

        An appointment is due when it starts within the next
        lead_time_hours. Appointments further out are skipped and picked up
        by a later run; failed sends stay unsent and are retried.

        Args:
            now: Current instant
            reminder_settings: Configuration read for this run

        Returns:
            Counts of sent, failed and skipped appointments
        """
        if not reminder_settings.enabled:
            logger.info("reminder_scan_disabled")
            return ReminderScanResult(enabled=False)

        now = _as_utc(now)
        started = timer.perf_counter()

        today = now.astimezone(self.clinic_tz).date()
        async with self.session_factory() as session:
            candidates = await AppointmentStore(session).find_reminder_candidates(today)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(appointment: dict[str, Any]) -> str:
            async with semaphore:
                return await self._process(appointment, now, reminder_settings.lead_time_hours)

        outcomes = await asyncio.gather(*(bounded(appointment) for appointment in candidates))

        result = ReminderScanResult(
            sent=outcomes.count(SENT),
            failed=outcomes.count(FAILED),
            skipped=outcomes.count(SKIPPED),
        )
        duration = timer.perf_counter() - started
        REMINDER_SCAN_DURATION.observe(duration)

        logger.info(
            "reminder_scan_completed",
            candidates=len(candidates),
            sent=result.sent,
            failed=result.failed,
            skipped=result.skipped,
            lead_time_hours=reminder_settings.lead_time_hours,
            duration_ms=round(duration * 1000, 2),
        )
        return result

    async def _process(self, appointment: dict[str, Any], now: datetime, lead_time_hours: int) -> str:
        hours = self.hours_until(appointment, now)
        if not 0 < hours <= lead_time_hours:
            return SKIPPED

        try:
            return await self._dispatch(appointment["id"])
        except Exception as e:
            REMINDERS_FAILED.inc()
            logger.error(
                "reminder_processing_error",
                appointment_id=str(appointment["id"]),
                error=str(e),
                exc_info=True,
            )
            return FAILED

    async def _dispatch(self, appointment_id: Any) -> str:
        async with self.session_factory() as session:
            store = AppointmentStore(session)

            claimed = await store.claim_reminder(appointment_id, self.claim_ttl_seconds)
            await session.commit()
            if not claimed:
                logger.debug("reminder_already_claimed", appointment_id=str(appointment_id))
                return SKIPPED

            # Render from the claimed row so a concurrent edit is reflected
            appointment = await store.get(appointment_id)
            message = self.notifier.render(EmailEvent.REMINDER, appointment) if appointment else None
            if message is None:
                await store.release_reminder_claim(appointment_id)
                await session.commit()
                return SKIPPED

            try:
                await self.notifier.deliver(message, appointment_id)
            except DependencyException as e:
                await self.notifier.record(session, message, appointment_id, "failed", e.message)
                await store.release_reminder_claim(appointment_id)
                await session.commit()
                REMINDERS_FAILED.inc()
                logger.warning(
                    "reminder_send_failed",
                    appointment_id=str(appointment_id),
                    error=e.message,
                )
                return FAILED

        # The provider accepted the message; from here on it counts as sent
        await self._mark_sent(appointment_id)
        async with self.session_factory() as session:
            try:
                await self.notifier.record(session, message, appointment_id, "sent")
            except Exception as e:
                logger.warning("reminder_log_failed", appointment_id=str(appointment_id), error=str(e))

        REMINDERS_SENT.inc()
        logger.info("reminder_sent", appointment_id=str(appointment_id))
        return SENT

    async def _mark_sent(self, appointment_id: Any) -> None:
        # One retry in a fresh session; a lease left behind would resend after the TTL
        for attempt in range(2):
            try:
                async with self.session_factory() as session:
                    await AppointmentStore(session).mark_reminder_sent(appointment_id)
                    await session.commit()
                return
            except Exception as e:
                logger.error(
                    "reminder_mark_sent_failed",
                    appointment_id=str(appointment_id),
                    attempt=attempt + 1,
                    error=str(e),
                )


async def run_reminder_scan(
    session_factory: async_sessionmaker[AsyncSession],
    notifier: NotificationService,
    now: datetime | None = None,
) -> ReminderScanResult:
    """
    Read the reminder configuration and run one scan with it.

    Args:
        session_factory: Factory for database sessions
        notifier: Email notifier
        now: Scan instant, defaults to the current time

    Returns:
        Scan outcome
    """
    async with session_factory() as session:
        reminder_settings = await ConfigService(session).get_reminder_settings()

    job = ReminderScanJob(
        session_factory,
        notifier,
        clinic_timezone=settings.clinic_timezone,
        concurrency=settings.reminder_concurrency,
        claim_ttl_seconds=settings.reminder_claim_ttl_seconds,
    )
    return await job.run(now or datetime.now(UTC), reminder_settings)
