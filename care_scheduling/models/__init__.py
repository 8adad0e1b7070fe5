"""Database models."""

from care_scheduling.models.app_config import app_config
from care_scheduling.models.appointments import appointments
from care_scheduling.models.email_logs import email_logs
from care_scheduling.models.metadata import metadata
from care_scheduling.models.submissions import provider_referrals, visit_requests

__all__ = [
    "app_config",
    "appointments",
    "email_logs",
    "metadata",
    "provider_referrals",
    "visit_requests",
]
