"""Conflict and availability checks for clinician schedules."""

from datetime import date, time
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.core.exceptions import ConflictException, ValidationException
from care_scheduling.schemas.appointments import AppointmentResponse, ConflictCheckResult
from care_scheduling.services.appointment_store import AppointmentStore

MINUTES_PER_DAY = 24 * 60


def slot_bounds(start_time: time, duration_minutes: int) -> tuple[int, int]:
    """
    Convert a slot to a half-open [start, end) interval in minutes since midnight.

    Raises:
        ValidationException: If the duration is not positive or the slot runs past midnight
    """
    if duration_minutes <= 0:
        raise ValidationException("Duration must be a positive number of minutes")

    start = start_time.hour * 60 + start_time.minute
    end = start + duration_minutes
    if end > MINUTES_PER_DAY:
        raise ValidationException("Appointments must end by midnight")
    return start, end


def intervals_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open intervals overlap unless one ends at or before the other starts."""
    return start1 < end2 and start2 < end1


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as HH:MM."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class ConflictService:
    """Detects overlaps between a candidate slot and a clinician's active appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.store = AppointmentStore(db)

    async def find_conflict(
        self,
        clinician: str,
        appointment_date: date,
        start_time: time,
        duration_minutes: int,
        exclude_appointment_id: UUID | None = None,
    ) -> dict[str, Any] | None:
        """Return the first active appointment overlapping the candidate slot, if any."""
        start, end = slot_bounds(start_time, duration_minutes)

        existing = await self.store.find_active_for_clinician_day(
            clinician,
            appointment_date,
            exclude_appointment_id,
        )
        for row in existing:
            other_start, other_end = slot_bounds(row["appointment_time"], row["duration_minutes"])
            if intervals_overlap(start, end, other_start, other_end):
                return row
        return None

    async def check_conflict(
        self,
        clinician: str,
        appointment_date: date,
        start_time: time,
        duration_minutes: int,
        exclude_appointment_id: UUID | None = None,
    ) -> ConflictCheckResult:
        """
        Check a candidate slot against the clinician's schedule.

        Only scheduled appointments block; cancelled, completed and no-show
        appointments never do. Back-to-back slots do not conflict.

        Args:
            clinician: Clinician the slot is for
            appointment_date: Calendar date of the slot
            start_time: Slot start time
            duration_minutes: Slot length
            exclude_appointment_id: Appointment to ignore, used when re-saving an edit

        Returns:
            Conflict flag and the colliding appointment
        """
        row = await self.find_conflict(
            clinician,
            appointment_date,
            start_time,
            duration_minutes,
            exclude_appointment_id,
        )
        if row is None:
            return ConflictCheckResult(conflict=False)

        return ConflictCheckResult(
            conflict=True,
            conflicting_appointment=AppointmentResponse.model_validate(row),
        )

    async def ensure_no_conflict(
        self,
        clinician: str,
        appointment_date: date,
        start_time: time,
        duration_minutes: int,
        exclude_appointment_id: UUID | None = None,
        draft: dict[str, Any] | None = None,
    ) -> None:
        """
        Raise if the candidate slot collides with an active appointment.

        Raises:
            ConflictException: Naming the colliding clinician and time
        """
        row = await self.find_conflict(
            clinician,
            appointment_date,
            start_time,
            duration_minutes,
            exclude_appointment_id,
        )
        if row is None:
            return

        other_start, other_end = slot_bounds(row["appointment_time"], row["duration_minutes"])
        conflicting = AppointmentResponse.model_validate(row).model_dump(mode="json")
        raise ConflictException(
            f"{row['clinician']} already has an appointment on "
            f"{row['appointment_date'].isoformat()} from {format_minutes(other_start)} "
            f"to {format_minutes(other_end)}",
            conflicting_appointment=conflicting,
            draft=draft,
        )

    async def available_slots(
        self,
        clinician: str,
        appointment_date: date,
        duration_minutes: int,
        start_hour: int,
        end_hour: int,
        step_minutes: int,
    ) -> list[time]:
        """
        List free start times on the practice's slot grid.

        The grid runs from start_hour to end_hour inclusive in step_minutes
        increments; a start is free when its slot fits before midnight and
        overlaps no active appointment.
        """
        if step_minutes <= 0:
            raise ValidationException("Slot step must be a positive number of minutes")
        if duration_minutes <= 0:
            raise ValidationException("Duration must be a positive number of minutes")

        busy = [
            slot_bounds(row["appointment_time"], row["duration_minutes"])
            for row in await self.store.find_active_for_clinician_day(clinician, appointment_date)
        ]

        slots: list[time] = []
        for start in range(start_hour * 60, end_hour * 60 + 1, step_minutes):
            end = start + duration_minutes
            if end > MINUTES_PER_DAY:
                break
            if any(intervals_overlap(start, end, b_start, b_end) for b_start, b_end in busy):
                continue
            slots.append(time(start // 60, start % 60))
        return slots
