"""Appointments table model using SQLAlchemy Core."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Time,
    Uuid,
    VARCHAR,
    false,
)

from care_scheduling.models.metadata import metadata


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Patient contact
    Column("patient_name", Text, nullable=False),
    Column("patient_phone", VARCHAR(20), nullable=True),
    Column("patient_email", Text, nullable=True),
    # Slot: [date + time, date + time + duration), clinic-local
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("duration_minutes", Integer, nullable=False, server_default="60"),
    Column("clinician", Text, nullable=False),
    Column("location", Text, nullable=False, server_default="in-home"),
    Column("address", Text, nullable=True),
    Column("appointment_type", Text, nullable=True),
    Column("notes", Text, nullable=True),
    # Status management
    Column("status", Text, nullable=False, server_default="scheduled"),
    # Originating submission; the submission owns the appointment's existence
    Column(
        "visit_request_id",
        Uuid,
        ForeignKey("visit_requests.id", ondelete="CASCADE"),
        nullable=True,
    ),
    Column(
        "provider_referral_id",
        Uuid,
        ForeignKey("provider_referrals.id", ondelete="CASCADE"),
        nullable=True,
    ),
    # Reminder dispatch
    Column("reminder_sent", Boolean, nullable=False, default=False, server_default=false()),
    Column("reminder_claimed_at", DateTime(timezone=True), nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "location IN ('in-home', 'clinic')",
        name="appointments_location_check",
    ),
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    CheckConstraint(
        "visit_request_id IS NULL OR provider_referral_id IS NULL",
        name="appointments_single_link_check",
    ),
    Index("idx_appointments_clinician_date", "clinician", "appointment_date"),
    Index("idx_appointments_reminder_scan", "status", "reminder_sent", "appointment_date"),
    Index("idx_appointments_visit_request_id", "visit_request_id"),
    Index("idx_appointments_provider_referral_id", "provider_referral_id"),
)
