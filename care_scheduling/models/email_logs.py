"""Email log table recording every dispatched patient email."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    String,
    Table,
    Text,
    Uuid,
)

from care_scheduling.models.metadata import metadata


def _utcnow() -> datetime:
    return datetime.now(UTC)


email_logs = Table(
    "email_logs",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("recipient_email", Text, nullable=False),
    Column("recipient_name", Text, nullable=True),
    Column("subject", Text, nullable=False),
    Column("body", Text, nullable=False),
    Column("event", String(20), nullable=False),
    Column("context_type", String(20), nullable=False, server_default="appointment"),
    Column("context_id", Uuid, nullable=True),
    Column("status", String(20), nullable=False),
    Column("failure_reason", Text, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    CheckConstraint(
        "event IN ('confirmation', 'update', 'reminder')",
        name="email_logs_event_check",
    ),
    CheckConstraint("status IN ('sent', 'failed')", name="email_logs_status_check"),
    Index("idx_email_logs_context", "context_type", "context_id"),
    Index("idx_email_logs_created_at", "created_at"),
)
