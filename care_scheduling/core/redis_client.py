"""Redis client configuration and utilities."""

from typing import cast
from uuid import uuid4

import redis
import structlog

from care_scheduling.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None

# Deletes the lock only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class ScanLock:
    """
    Redis-based lock that keeps overlapping reminder scans from running together.

    The lock only saves duplicate work; at-most-once delivery is enforced by
    the conditional updates in the appointment store. When Redis cannot be
    reached the lock fails open.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str = "lock:reminder_scan",
        ttl: int = 300,
    ):
        """Initialize lock with Redis client, key and expiry in seconds."""
        self.redis = redis_client
        self.key = key
        self.ttl = ttl
        self._token: str | None = None

    def acquire(self) -> bool:
        """
        Try to take the lock.

        Returns:
            True if the caller may run, False if another holder has it
        """
        token = uuid4().hex
        try:
            acquired = cast(bool | None, self.redis.set(self.key, token, nx=True, ex=self.ttl))
        except Exception as e:
            logger.warning("scan_lock_unavailable", key=self.key, error=str(e))
            self._token = None
            return True

        if not acquired:
            return False

        self._token = token
        return True

    def release(self) -> None:
        """Release the lock if this instance still holds it."""
        if self._token is None:
            return

        try:
            self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self._token)
        except Exception as e:
            logger.warning("scan_lock_release_failed", key=self.key, error=str(e))
        finally:
            self._token = None
