"""Visit request and provider referral tables using SQLAlchemy Core.

Submissions are created by the public intake forms; scheduling only reads
their contact details and drives their status.
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Table,
    Text,
    Uuid,
)

from care_scheduling.models.metadata import metadata

SUBMISSION_STATUS_CHECK = "status IN ('pending', 'contacted', 'scheduled', 'completed', 'cancelled')"


def _utcnow() -> datetime:
    return datetime.now(UTC)


visit_requests = Table(
    "visit_requests",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("patient_name", Text, nullable=False),
    Column("phone", Text, nullable=False),
    Column("email", Text, nullable=True),
    Column("address", Text, nullable=False),
    Column("wound_type", Text, nullable=True),
    Column("preferred_date", Text, nullable=True),
    Column("preferred_time", Text, nullable=True),
    Column("additional_notes", Text, nullable=True),
    Column("status", Text, nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
    CheckConstraint(SUBMISSION_STATUS_CHECK, name="visit_requests_status_check"),
    Index("idx_visit_requests_status", "status"),
)

provider_referrals = Table(
    "provider_referrals",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Referring provider
    Column("provider_name", Text, nullable=False),
    Column("provider_organization", Text, nullable=True),
    Column("provider_email", Text, nullable=False),
    Column("provider_phone", Text, nullable=False),
    # Patient
    Column("patient_name", Text, nullable=False),
    Column("patient_phone", Text, nullable=False),
    Column("patient_email", Text, nullable=True),
    Column("patient_address", Text, nullable=False),
    Column("wound_type", Text, nullable=True),
    Column("urgency", Text, nullable=True),
    Column("clinical_notes", Text, nullable=True),
    Column("status", Text, nullable=False, server_default="pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
    CheckConstraint(SUBMISSION_STATUS_CHECK, name="provider_referrals_status_check"),
    Index("idx_provider_referrals_status", "status"),
)
