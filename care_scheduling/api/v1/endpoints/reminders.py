"""Reminder trigger endpoint for external cron."""

import structlog
from fastapi import APIRouter, status

from care_scheduling.config import settings
from care_scheduling.core.exceptions import ConflictException
from care_scheduling.core.redis_client import ScanLock
from care_scheduling.dependencies import CronAuthorized, Notifier, RedisClient, SessionFactory
from care_scheduling.schemas.reminders import ReminderScanResult
from care_scheduling.services.reminder_service import run_reminder_scan

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/run",
    response_model=ReminderScanResult,
    status_code=status.HTTP_200_OK,
    tags=["Reminders"],
    summary="Run reminder scan",
    dependencies=[CronAuthorized],
)
async def run_reminders(
    session_factory: SessionFactory,
    notifier: Notifier,
    redis_client: RedisClient,
) -> ReminderScanResult:
    """
    Run one reminder scan now.

    Requires the X-Cron-Secret header.

    Returns:
        Counts of sent, failed and skipped appointments

    Raises:
        ConflictException: If another scan holds the scan lock
    """
    lock = ScanLock(redis_client, ttl=settings.scan_lock_ttl_seconds)
    if not lock.acquire():
        raise ConflictException("A reminder scan is already running")

    try:
        result = await run_reminder_scan(session_factory, notifier)
    finally:
        lock.release()

    logger.info("reminder_scan_triggered", sent=result.sent, failed=result.failed)
    return result
