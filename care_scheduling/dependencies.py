"""FastAPI dependencies."""

import secrets
from typing import Annotated, Any

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from care_scheduling.config import settings
from care_scheduling.core.email_sender import EmailSender, get_email_sender
from care_scheduling.core.exceptions import UnauthorizedException
from care_scheduling.core.redis_client import get_redis_client
from care_scheduling.database import get_db, get_session_factory
from care_scheduling.services.notification_service import NotificationService


def get_notifier(
    sender: Annotated[EmailSender, Depends(get_email_sender)],
) -> NotificationService:
    """
    Build the patient email notifier.

    Args:
        sender: Email delivery adapter

    Returns:
        Notifier signing emails with the practice name
    """
    return NotificationService(sender, settings.practice_name)


async def verify_cron_secret(
    x_cron_secret: Annotated[str | None, Header(alias="X-Cron-Secret")] = None,
) -> None:
    """
    Authenticate external cron triggers.

    Raises:
        UnauthorizedException: If the header is missing or wrong
    """
    if not x_cron_secret or not secrets.compare_digest(x_cron_secret, settings.cron_secret):
        raise UnauthorizedException("Invalid cron secret")


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Notifier = Annotated[NotificationService, Depends(get_notifier)]
RedisClient = Annotated[Any, Depends(get_redis_client)]
CronAuthorized = Depends(verify_cron_secret)
