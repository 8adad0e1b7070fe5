"""Create scheduling tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SUBMISSION_STATUS_CHECK = "status IN ('pending', 'contacted', 'scheduled', 'completed', 'cancelled')"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
    )


def upgrade() -> None:
    """Upgrade database schema."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')
    # Needed for "clinician WITH =" inside a GiST exclusion constraint
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    op.create_table(
        "visit_requests",
        _uuid_pk(),
        sa.Column("patient_name", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("wound_type", sa.Text(), nullable=True),
        sa.Column("preferred_date", sa.Text(), nullable=True),
        sa.Column("preferred_time", sa.Text(), nullable=True),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(SUBMISSION_STATUS_CHECK, name="visit_requests_status_check"),
        sa.PrimaryKeyConstraint("id", name="visit_requests_pkey"),
    )
    op.create_index("idx_visit_requests_status", "visit_requests", ["status"])

    op.create_table(
        "provider_referrals",
        _uuid_pk(),
        sa.Column("provider_name", sa.Text(), nullable=False),
        sa.Column("provider_organization", sa.Text(), nullable=True),
        sa.Column("provider_email", sa.Text(), nullable=False),
        sa.Column("provider_phone", sa.Text(), nullable=False),
        sa.Column("patient_name", sa.Text(), nullable=False),
        sa.Column("patient_phone", sa.Text(), nullable=False),
        sa.Column("patient_email", sa.Text(), nullable=True),
        sa.Column("patient_address", sa.Text(), nullable=False),
        sa.Column("wound_type", sa.Text(), nullable=True),
        sa.Column("urgency", sa.Text(), nullable=True),
        sa.Column("clinical_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        *_timestamps(),
        sa.CheckConstraint(SUBMISSION_STATUS_CHECK, name="provider_referrals_status_check"),
        sa.PrimaryKeyConstraint("id", name="provider_referrals_pkey"),
    )
    op.create_index("idx_provider_referrals_status", "provider_referrals", ["status"])

    op.create_table(
        "appointments",
        _uuid_pk(),
        sa.Column("patient_name", sa.Text(), nullable=False),
        sa.Column("patient_phone", sa.VARCHAR(length=20), nullable=True),
        sa.Column("patient_email", sa.Text(), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.Time(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), server_default="60", nullable=False),
        sa.Column("clinician", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), server_default="in-home", nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("appointment_type", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("visit_request_id", postgresql.UUID(), nullable=True),
        sa.Column("provider_referral_id", postgresql.UUID(), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("reminder_claimed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "location IN ('in-home', 'clinic')",
            name="appointments_location_check",
        ),
        sa.CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
        sa.CheckConstraint(
            "appointment_time + make_interval(mins => duration_minutes) > appointment_time"
            " OR appointment_time + make_interval(mins => duration_minutes) = '00:00'::time",
            name="appointments_same_day_check",
        ),
        sa.CheckConstraint(
            "visit_request_id IS NULL OR provider_referral_id IS NULL",
            name="appointments_single_link_check",
        ),
        sa.ForeignKeyConstraint(
            ["visit_request_id"],
            ["visit_requests.id"],
            name="fk_appointments_visit_request_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["provider_referral_id"],
            ["provider_referrals.id"],
            name="fk_appointments_provider_referral_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="appointments_pkey"),
    )
    op.create_index(
        "idx_appointments_clinician_date", "appointments", ["clinician", "appointment_date"]
    )
    op.create_index(
        "idx_appointments_reminder_scan",
        "appointments",
        ["status", "reminder_sent", "appointment_date"],
    )
    op.create_index("idx_appointments_visit_request_id", "appointments", ["visit_request_id"])
    op.create_index(
        "idx_appointments_provider_referral_id", "appointments", ["provider_referral_id"]
    )

    # No two scheduled appointments of one clinician may overlap
    op.execute(
        """
        ALTER TABLE appointments
        ADD CONSTRAINT appointments_no_overlap
        EXCLUDE USING gist (
            clinician WITH =,
            tsrange(
                appointment_date + appointment_time,
                appointment_date + appointment_time + make_interval(mins => duration_minutes),
                '[)'
            ) WITH &&
        )
        WHERE (status = 'scheduled');
        """
    )

    op.create_table(
        "app_config",
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key", name="app_config_pkey"),
    )
    op.execute(
        """
        INSERT INTO app_config (key, value) VALUES
            ('enable_appointment_reminders', 'true'),
            ('reminder_time', '24')
        ON CONFLICT (key) DO NOTHING;
        """
    )

    op.create_table(
        "email_logs",
        _uuid_pk(),
        sa.Column("recipient_email", sa.Text(), nullable=False),
        sa.Column("recipient_name", sa.Text(), nullable=True),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("event", sa.String(length=20), nullable=False),
        sa.Column("context_type", sa.String(length=20), server_default="appointment", nullable=False),
        sa.Column("context_id", postgresql.UUID(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "event IN ('confirmation', 'update', 'reminder')",
            name="email_logs_event_check",
        ),
        sa.CheckConstraint("status IN ('sent', 'failed')", name="email_logs_status_check"),
        sa.PrimaryKeyConstraint("id", name="email_logs_pkey"),
    )
    op.create_index("idx_email_logs_context", "email_logs", ["context_type", "context_id"])
    op.create_index("idx_email_logs_created_at", "email_logs", ["created_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("idx_email_logs_created_at", table_name="email_logs")
    op.drop_index("idx_email_logs_context", table_name="email_logs")
    op.drop_table("email_logs")

    op.drop_table("app_config")

    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS appointments_no_overlap")
    op.drop_index("idx_appointments_provider_referral_id", table_name="appointments")
    op.drop_index("idx_appointments_visit_request_id", table_name="appointments")
    op.drop_index("idx_appointments_reminder_scan", table_name="appointments")
    op.drop_index("idx_appointments_clinician_date", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("idx_provider_referrals_status", table_name="provider_referrals")
    op.drop_table("provider_referrals")

    op.drop_index("idx_visit_requests_status", table_name="visit_requests")
    op.drop_table("visit_requests")
