"""Tests for the Redis scan lock and the scheduled scan wrapper."""

from unittest.mock import MagicMock

import pytest
import redis

from care_scheduling.core.redis_client import ScanLock
from care_scheduling.scheduler import ReminderScheduler, scheduled_reminder_scan


def test_acquire_sets_key_with_expiry():
    mock_redis = MagicMock()
    mock_redis.set.return_value = True
    lock = ScanLock(redis_client=mock_redis, key="lock:test", ttl=120)

    assert lock.acquire() is True

    args, kwargs = mock_redis.set.call_args
    assert args[0] == "lock:test"
    assert kwargs == {"nx": True, "ex": 120}


def test_acquire_fails_when_held():
    mock_redis = MagicMock()
    mock_redis.set.return_value = None
    lock = ScanLock(redis_client=mock_redis)

    assert lock.acquire() is False

    lock.release()
    mock_redis.eval.assert_not_called()


def test_release_passes_own_token():
    mock_redis = MagicMock()
    mock_redis.set.return_value = True
    lock = ScanLock(redis_client=mock_redis, key="lock:test")

    lock.acquire()
    token = mock_redis.set.call_args[0][1]
    lock.release()

    args = mock_redis.eval.call_args[0]
    assert args[1:] == (1, "lock:test", token)


def test_lock_fails_open_without_redis():
    mock_redis = MagicMock()
    mock_redis.set.side_effect = redis.ConnectionError("connection refused")
    lock = ScanLock(redis_client=mock_redis)

    assert lock.acquire() is True

    lock.release()
    mock_redis.eval.assert_not_called()


@pytest.mark.asyncio
async def test_scheduled_scan_skips_when_locked(session_factory, email_sender):
    mock_redis = MagicMock()
    mock_redis.set.return_value = None

    result = await scheduled_reminder_scan(session_factory, email_sender, redis_client=mock_redis)

    assert result is None


@pytest.mark.asyncio
async def test_scheduled_scan_runs_and_releases(session_factory, email_sender, redis_mock):
    result = await scheduled_reminder_scan(session_factory, email_sender, redis_client=redis_mock)

    assert result is not None
    assert result.sent == 0
    redis_mock.eval.assert_called_once()


def test_disabled_scheduler_does_not_start(session_factory, email_sender):
    scheduler = ReminderScheduler(session_factory, email_sender, enabled=False)

    scheduler.start()

    assert scheduler.is_running is False
    assert scheduler.get_jobs_info() == []


@pytest.mark.asyncio
async def test_scheduler_registers_interval_job(session_factory, email_sender):
    scheduler = ReminderScheduler(session_factory, email_sender, interval_minutes=5)

    scheduler.start()
    try:
        assert scheduler.is_running is True
        [job] = scheduler.get_jobs_info()
        assert job["id"] == "appointment_reminder_scan"
        assert job["next_run"] is not None
    finally:
        scheduler.stop()

    assert scheduler.is_running is False
