"""Key/value configuration table shared with the admin console."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Table, Text

from care_scheduling.models.metadata import metadata


def _utcnow() -> datetime:
    return datetime.now(UTC)


app_config = Table(
    "app_config",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=True),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
)
