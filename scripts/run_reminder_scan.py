#!/usr/bin/env python3
"""
Run one appointment reminder scan.

Usage:
    python scripts/run_reminder_scan.py
    python scripts/run_reminder_scan.py --now 2026-10-18T14:00:00+00:00
    python scripts/run_reminder_scan.py --remote

By default the scan runs in this process against DATABASE_URL. With --remote
it asks a running API instance to scan instead.

Environment Variables:
    DATABASE_URL: Database to scan (local mode)
    RESEND_API_KEY: Email provider key (local mode)
    CRON_SECRET: Trigger secret (remote mode)
    API_URL: Base API URL (remote mode, default: http://localhost:8000)
"""

import argparse
import asyncio
import os
import sys
from datetime import UTC, datetime

import dotenv
import requests

dotenv.load_dotenv()


async def run_local(now: datetime | None) -> dict:
    """Scan in-process using the application's database and email settings."""
    from care_scheduling.config import settings
    from care_scheduling.core.email_sender import close_email_sender, get_email_sender
    from care_scheduling.database import AsyncSessionLocal, engine
    from care_scheduling.middleware.logging import configure_logging
    from care_scheduling.services.notification_service import NotificationService
    from care_scheduling.services.reminder_service import run_reminder_scan

    configure_logging()
    notifier = NotificationService(get_email_sender(), settings.practice_name)
    try:
        result = await run_reminder_scan(AsyncSessionLocal, notifier, now)
    finally:
        await close_email_sender()
        await engine.dispose()

    return result.model_dump()


def run_remote() -> dict:
    """Trigger a scan on a running API instance."""
    cron_secret = os.getenv("CRON_SECRET")
    if not cron_secret:
        print("Error: CRON_SECRET environment variable not set", file=sys.stderr)
        sys.exit(1)

    api_url = os.getenv("API_URL", "http://localhost:8000")
    url = f"{api_url}/api/v1/reminders/run"

    try:
        response = requests.post(url, headers={"X-Cron-Secret": cron_secret}, timeout=300)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        print(f"HTTP Error: {e}", file=sys.stderr)
        print(f"Response: {e.response.text}", file=sys.stderr)
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"Request Error: {e}", file=sys.stderr)
        sys.exit(1)


def parse_now(value: str) -> datetime:
    """Parse an ISO-8601 instant; naive values are UTC."""
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Send due appointment reminders once")
    parser.add_argument(
        "--now",
        type=parse_now,
        help="Scan as if it were this instant (ISO-8601, default: current time)",
    )
    parser.add_argument(
        "--remote",
        action="store_true",
        help="Trigger the scan on a running API instance instead of locally",
    )

    args = parser.parse_args()

    if args.remote:
        if args.now:
            parser.error("--now is only supported for local scans")
        result = run_remote()
    else:
        result = asyncio.run(run_local(args.now))

    if not result.get("enabled", True):
        print("Reminders are disabled in settings; nothing sent.")
        return

    print("Reminder scan finished")
    print(f"   Sent:    {result['sent']}")
    print(f"   Failed:  {result['failed']}")
    print(f"   Skipped: {result['skipped']}")

    if result["failed"]:
        sys.exit(2)


if __name__ == "__main__":
    main()
