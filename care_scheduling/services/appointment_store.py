"""Appointment store: all SQL issued against the appointments table."""

from datetime import UTC, date, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.core.exceptions import ConflictException
from care_scheduling.models.appointments import appointments
from care_scheduling.schemas.appointments import AppointmentFilters, AppointmentStatus

# PostgreSQL exclusion_violation, raised by the no-overlap constraint
EXCLUSION_VIOLATION = "23P01"


def _is_exclusion_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION


class AppointmentStore:
    """
    Thin persistence adapter over the appointments table.

    Methods never commit; the calling service owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    @property
    def dialect_name(self) -> str:
        """Name of the backing database dialect."""
        return self.db.get_bind().dialect.name

    async def get(self, appointment_id: UUID, for_update: bool = False) -> dict[str, Any] | None:
        """Fetch one appointment row as a dict."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.fetchone()
        return dict(row._mapping) if row else None

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Insert an appointment.

        Raises:
            ConflictException: If the store's no-overlap constraint rejects the row
        """
        stmt = insert(appointments).values(**values).returning(appointments)
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            if _is_exclusion_violation(e):
                raise ConflictException(
                    f"{values.get('clinician')} already has an overlapping appointment"
                ) from e
            raise

        row = result.fetchone()
        return dict(row._mapping)

    async def update(self, appointment_id: UUID, values: dict[str, Any]) -> dict[str, Any] | None:
        """
        Update an appointment and return the new row.

        Raises:
            ConflictException: If the store's no-overlap constraint rejects the change
        """
        values = {**values, "updated_at": datetime.now(UTC)}
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            if _is_exclusion_violation(e):
                raise ConflictException("Appointment overlaps an existing appointment") from e
            raise

        row = result.fetchone()
        return dict(row._mapping) if row else None

    async def list_appointments(
        self,
        filters: AppointmentFilters,
    ) -> tuple[int, list[dict[str, Any]]]:
        """List appointments matching filters, newest slot first."""
        conditions = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.clinician:
            conditions.append(appointments.c.clinician == filters.clinician)

        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        count_stmt = select(func.count()).select_from(appointments).where(and_(True, *conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(and_(True, *conditions))
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
            )
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        return total, [dict(row._mapping) for row in result.fetchall()]

    async def find_active_for_clinician_day(
        self,
        clinician: str,
        appointment_date: date,
        exclude_appointment_id: UUID | None = None,
    ) -> list[dict[str, Any]]:
        """Scheduled appointments of one clinician on one day."""
        conditions = [
            appointments.c.clinician == clinician,
            appointments.c.appointment_date == appointment_date,
            appointments.c.status == AppointmentStatus.SCHEDULED.value,
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = select(appointments).where(and_(*conditions)).order_by(appointments.c.appointment_time)
        result = await self.db.execute(stmt)
        return [dict(row._mapping) for row in result.fetchall()]

    async def lock_clinician_day(self, clinician: str, appointment_date: date) -> None:
        """
        Serialize check-then-write for one clinician's day.

        Takes a transaction-scoped advisory lock on PostgreSQL. Other backends
        rely on their own write serialization.
        """
        if self.dialect_name != "postgresql":
            return

        key = f"{clinician}|{appointment_date.isoformat()}"
        await self.db.execute(select(func.pg_advisory_xact_lock(func.hashtext(key))))

    async def find_reminder_candidates(self, today: date) -> list[dict[str, Any]]:
        """Scheduled, not yet reminded appointments from today on that have an email."""
        stmt = (
            select(appointments)
            .where(
                appointments.c.status == AppointmentStatus.SCHEDULED.value,
                appointments.c.reminder_sent == False,  # noqa: E712
                appointments.c.appointment_date >= today,
                appointments.c.patient_email.is_not(None),
                appointments.c.patient_email != "",
            )
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
        )
        result = await self.db.execute(stmt)
        return [dict(row._mapping) for row in result.fetchall()]

    async def claim_reminder(self, appointment_id: UUID, ttl_seconds: int) -> bool:
        """
        Take the reminder lease for one appointment.

        Succeeds only while the reminder is unsent, the appointment is still
        scheduled and no live lease exists, so concurrent scans cannot both
        send. Leases are stamped with the wall clock rather than the scan
        instant, so a scan run for another instant cannot retake a live lease.
        """
        claimed_at = datetime.now(UTC)
        stale_before = claimed_at - timedelta(seconds=ttl_seconds)
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.status == AppointmentStatus.SCHEDULED.value,
                appointments.c.reminder_sent == False,  # noqa: E712
                or_(
                    appointments.c.reminder_claimed_at.is_(None),
                    appointments.c.reminder_claimed_at < stale_before,
                ),
            )
            .values(reminder_claimed_at=claimed_at)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def mark_reminder_sent(self, appointment_id: UUID) -> bool:
        """Set reminder_sent, only if it is still unset."""
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.reminder_sent == False,  # noqa: E712
            )
            .values(reminder_sent=True, reminder_claimed_at=None)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def release_reminder_claim(self, appointment_id: UUID) -> None:
        """Drop the reminder lease so the next scan retries."""
        stmt = (
            update(appointments)
            .where(
                appointments.c.id == appointment_id,
                appointments.c.reminder_sent == False,  # noqa: E712
            )
            .values(reminder_claimed_at=None)
        )
        await self.db.execute(stmt)

    async def find_scheduled_linked(self, link_column: str, submission_id: UUID) -> list[dict[str, Any]]:
        """Scheduled appointments owned by a submission."""
        stmt = select(appointments).where(
            appointments.c[link_column] == submission_id,
            appointments.c.status == AppointmentStatus.SCHEDULED.value,
        )
        result = await self.db.execute(stmt)
        return [dict(row._mapping) for row in result.fetchall()]

    async def delete_linked(self, link_column: str, submission_id: UUID) -> int:
        """Delete appointments owned by a submission."""
        stmt = delete(appointments).where(appointments.c[link_column] == submission_id)
        result = await self.db.execute(stmt)
        return result.rowcount
