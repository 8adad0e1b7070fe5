"""Prometheus metrics for the reminder pipeline."""

from prometheus_client import Counter, Histogram

REMINDERS_SENT = Counter(
    "care_reminders_sent_total",
    "Appointment reminder emails accepted by the email provider",
)

REMINDERS_FAILED = Counter(
    "care_reminders_failed_total",
    "Appointment reminder emails that failed and will be retried",
)

REMINDER_SCAN_DURATION = Histogram(
    "care_reminder_scan_duration_seconds",
    "Wall-clock duration of one reminder scan",
)
