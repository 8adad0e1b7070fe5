"""In-process trigger for the reminder scan.

APScheduler runs the scan on a fixed interval inside the API process. A Redis
lock keeps several API replicas from scanning at the same moment.
"""

from datetime import UTC, datetime
from typing import Any

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from care_scheduling.config import settings
from care_scheduling.core.email_sender import EmailSender
from care_scheduling.core.redis_client import ScanLock, get_redis_client
from care_scheduling.schemas.reminders import ReminderScanResult
from care_scheduling.services.notification_service import NotificationService
from care_scheduling.services.reminder_service import run_reminder_scan

logger = structlog.get_logger(__name__)

REMINDER_JOB_ID = "appointment_reminder_scan"


async def scheduled_reminder_scan(
    session_factory: async_sessionmaker[AsyncSession],
    sender: EmailSender,
    redis_client: Any | None = None,
) -> ReminderScanResult | None:
    """
    Run one reminder scan unless another process is already scanning.

    Returns:
        Scan outcome, or None if skipped or failed
    """
    lock = ScanLock(
        redis_client if redis_client is not None else get_redis_client(),
        ttl=settings.scan_lock_ttl_seconds,
    )
    if not lock.acquire():
        logger.info("reminder_scan_skipped_locked")
        return None

    notifier = NotificationService(sender, settings.practice_name)
    try:
        return await run_reminder_scan(session_factory, notifier, datetime.now(UTC))
    except Exception as e:
        # The next interval retries; the scheduler must keep running
        logger.error("reminder_scan_failed", error=str(e), exc_info=True)
        return None
    finally:
        lock.release()


class ReminderScheduler:
    """Runs the reminder scan every few minutes."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sender: EmailSender,
        interval_minutes: int = 5,
        enabled: bool = True,
    ):
        """
        Initialize scheduler.

        Args:
            session_factory: Factory for database sessions
            sender: Email delivery adapter
            interval_minutes: Minutes between scans
            enabled: Whether the scheduler starts at all
        """
        self.session_factory = session_factory
        self.sender = sender
        self.interval_minutes = interval_minutes
        self.enabled = enabled

        self._scheduler: AsyncIOScheduler | None = None

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        """Start the scheduler."""
        if not self.enabled:
            logger.info("reminder_scheduler_disabled")
            return

        if self.is_running:
            logger.warning("reminder_scheduler_already_running")
            return

        scheduler = AsyncIOScheduler(timezone=UTC)
        scheduler.add_job(
            scheduled_reminder_scan,
            IntervalTrigger(minutes=self.interval_minutes),
            args=[self.session_factory, self.sender],
            id=REMINDER_JOB_ID,
            name="Appointment reminder scan",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info("reminder_scheduler_started", interval_minutes=self.interval_minutes)

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running scan."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("reminder_scheduler_stopped")
        self._scheduler = None

    def get_jobs_info(self) -> list[dict[str, Any]]:
        """Describe scheduled jobs for the detailed health check."""
        if self._scheduler is None:
            return []

        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in self._scheduler.get_jobs()
        ]
