"""Appointment service for scheduling and status transitions."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.core.exceptions import NotFoundException, ValidationException
from care_scheduling.schemas.appointments import (
    AppointmentCreate,
    AppointmentDraft,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentLocation,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
)
from care_scheduling.schemas.notifications import EmailEvent
from care_scheduling.schemas.submissions import SubmissionStatus, SubmissionType
from care_scheduling.services.appointment_store import AppointmentStore
from care_scheduling.services.conflict_service import ConflictService, slot_bounds
from care_scheduling.services.notification_service import NotificationService
from care_scheduling.services.status_mirror import mirrored_submission_status
from care_scheduling.services.submission_service import (
    APPOINTMENT_LINK_COLUMNS,
    SubmissionService,
    contact_details,
    parse_submission_type,
)

logger = structlog.get_logger(__name__)

# Fields whose change moves the appointment's slot
SCHEDULE_FIELDS = ("clinician", "appointment_date", "appointment_time", "duration_minutes")

# Columns an edit may change but never clear
REQUIRED_FIELDS = ("patient_name", *SCHEDULE_FIELDS, "location")

# Submissions in these states cannot be scheduled again
UNSCHEDULABLE_SUBMISSION_STATUSES = {
    SubmissionStatus.SCHEDULED.value,
    SubmissionStatus.COMPLETED.value,
}


def parse_status(value: AppointmentStatus | str) -> AppointmentStatus:
    """Coerce an appointment status, rejecting unknown values."""
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationException(f"Unknown appointment status: {value}")


def _plain(values: dict[str, Any]) -> dict[str, Any]:
    """Unwrap enum members to their stored values."""
    return {key: getattr(value, "value", value) for key, value in values.items()}


def _validate_slot(values: dict[str, Any]) -> None:
    if not values.get("patient_name"):
        raise ValidationException("Patient name is required")

    if values["location"] == AppointmentLocation.IN_HOME.value and not values.get("address"):
        raise ValidationException("An address is required for in-home visits")

    slot_bounds(values["appointment_time"], values["duration_minutes"])


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession, notifier: NotificationService | None = None):
        """
        Initialize service.

        Args:
            db: Database session
            notifier: Patient email sender; emails are skipped when None
        """
        self.db = db
        self.notifier = notifier
        self.store = AppointmentStore(db)
        self.conflicts = ConflictService(db)
        self.submissions = SubmissionService(db)

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentResponse:
        """
        Schedule an appointment that does not originate from a submission.

        Args:
            data: Appointment creation data

        Returns:
            Created appointment

        Raises:
            ValidationException: If the slot or patient details are invalid
            ConflictException: If the clinician is already booked for the slot
        """
        values = _plain(data.model_dump())
        _validate_slot(values)

        try:
            await self.store.lock_clinician_day(values["clinician"], values["appointment_date"])
            await self.conflicts.ensure_no_conflict(
                values["clinician"],
                values["appointment_date"],
                values["appointment_time"],
                values["duration_minutes"],
                draft=data.model_dump(mode="json"),
            )
            values["status"] = AppointmentStatus.SCHEDULED.value
            row = await self.store.insert(values)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_scheduled",
            appointment_id=str(row["id"]),
            clinician=row["clinician"],
            appointment_date=row["appointment_date"].isoformat(),
        )
        await self._notify(EmailEvent.CONFIRMATION, row)
        return AppointmentResponse.model_validate(row)

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        row = await self.store.get(appointment_id)
        if not row:
            raise NotFoundException("Appointment not found")
        return AppointmentResponse.model_validate(row)

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        total, rows = await self.store.list_appointments(filters)
        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(row) for row in rows],
        )

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Edit an existing appointment.

        A change to the clinician, date, time or duration of a scheduled
        appointment is checked against the target clinician's schedule,
        ignoring the appointment's own current slot.

        Args:
            appointment_id: Appointment ID
            data: Fields to change

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ValidationException: If a required field is cleared or the result is invalid
            ConflictException: If the new slot collides with another appointment
        """
        changes = _plain(data.model_dump(exclude_unset=True))
        cleared = sorted(field for field in REQUIRED_FIELDS if field in changes and changes[field] is None)
        if cleared:
            raise ValidationException(f"Cannot clear required fields: {', '.join(cleared)}")

        try:
            current = await self.store.get(appointment_id, for_update=True)
            if not current:
                raise NotFoundException("Appointment not found")

            if not changes:
                await self.db.rollback()
                return AppointmentResponse.model_validate(current)

            merged = {**current, **changes}
            _validate_slot(merged)

            schedule_changed = any(merged[field] != current[field] for field in SCHEDULE_FIELDS)
            if schedule_changed and merged["status"] == AppointmentStatus.SCHEDULED.value:
                await self.store.lock_clinician_day(merged["clinician"], merged["appointment_date"])
                await self.conflicts.ensure_no_conflict(
                    merged["clinician"],
                    merged["appointment_date"],
                    merged["appointment_time"],
                    merged["duration_minutes"],
                    exclude_appointment_id=appointment_id,
                    draft=data.model_dump(mode="json", exclude_unset=True),
                )

            row = await self.store.update(appointment_id, changes)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(changes),
            schedule_changed=schedule_changed,
        )
        if schedule_changed and row["status"] == AppointmentStatus.SCHEDULED.value:
            await self._notify(EmailEvent.UPDATE, row)
        return AppointmentResponse.model_validate(row)

    async def transition(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus | str,
    ) -> AppointmentResponse:
        """
        Change an appointment's status and mirror it onto the linked submission.

        Any status may move to any other. Moving back to scheduled re-checks
        the slot so a revived appointment cannot double-book the clinician.
        The appointment and submission updates commit together.

        Args:
            appointment_id: Appointment ID
            new_status: Target status

        Returns:
            Updated appointment

        Raises:
            ValidationException: If the status is unknown
            NotFoundException: If appointment not found
            ConflictException: If re-activation collides with another appointment
        """
        status = parse_status(new_status)

        try:
            current = await self.store.get(appointment_id, for_update=True)
            if not current:
                raise NotFoundException("Appointment not found")

            if (
                status == AppointmentStatus.SCHEDULED
                and current["status"] != AppointmentStatus.SCHEDULED.value
            ):
                await self.store.lock_clinician_day(current["clinician"], current["appointment_date"])
                await self.conflicts.ensure_no_conflict(
                    current["clinician"],
                    current["appointment_date"],
                    current["appointment_time"],
                    current["duration_minutes"],
                    exclude_appointment_id=appointment_id,
                )

            row = await self.store.update(appointment_id, {"status": status.value})
            await self._mirror_status(row, status)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current["status"],
            new_status=status.value,
        )
        return AppointmentResponse.model_validate(row)

    async def schedule_from_submission(
        self,
        submission_id: UUID,
        submission_type: SubmissionType | str,
        draft: AppointmentDraft,
    ) -> AppointmentResponse:
        """
        Create an appointment for a visit request or referral.

        Patient contact fields missing from the draft are taken from the
        submission. The appointment insert and the submission moving to
        scheduled happen in one transaction; on any failure neither persists.

        Args:
            submission_id: Submission ID
            submission_type: Visit request or provider referral
            draft: Slot and patient details

        Returns:
            Created appointment

        Raises:
            NotFoundException: If the submission does not exist
            ValidationException: If the draft is invalid or the submission is already scheduled or completed
            ConflictException: Carrying the colliding appointment and the draft
        """
        submission_type = parse_submission_type(submission_type)

        try:
            submission = await self.submissions.get_row(
                submission_type,
                submission_id,
                for_update=True,
            )
            if submission["status"] in UNSCHEDULABLE_SUBMISSION_STATUSES:
                raise ValidationException(f"Submission is already {submission['status']}")
            if await self.submissions.has_scheduled_appointment(submission_type, submission_id):
                raise ValidationException("Submission already has a scheduled appointment")

            values = contact_details(submission_type, submission)
            values.update(
                {field: value for field, value in _plain(draft.model_dump()).items() if value is not None}
            )
            _validate_slot(values)

            await self.store.lock_clinician_day(values["clinician"], values["appointment_date"])
            await self.conflicts.ensure_no_conflict(
                values["clinician"],
                values["appointment_date"],
                values["appointment_time"],
                values["duration_minutes"],
                draft=draft.model_dump(mode="json"),
            )

            values[APPOINTMENT_LINK_COLUMNS[submission_type]] = submission_id
            values["status"] = AppointmentStatus.SCHEDULED.value
            row = await self.store.insert(values)
            await self.submissions.set_status(submission_type, submission_id, SubmissionStatus.SCHEDULED)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "appointment_scheduled_from_submission",
            appointment_id=str(row["id"]),
            submission_type=submission_type.value,
            submission_id=str(submission_id),
            clinician=row["clinician"],
        )
        await self._notify(EmailEvent.CONFIRMATION, row)
        return AppointmentResponse.model_validate(row)

    async def _mirror_status(self, row: dict[str, Any], status: AppointmentStatus) -> None:
        target = mirrored_submission_status(status)
        if target is None:
            return

        for submission_type, column in APPOINTMENT_LINK_COLUMNS.items():
            submission_id = row.get(column)
            if submission_id is None:
                continue

            updated = await self.submissions.set_status(submission_type, submission_id, target)
            if not updated:
                logger.warning(
                    "linked_submission_missing",
                    appointment_id=str(row["id"]),
                    submission_type=submission_type.value,
                    submission_id=str(submission_id),
                )

    async def _notify(self, event: EmailEvent, row: dict[str, Any]) -> None:
        if self.notifier is None:
            return

        # The appointment is already committed; email failure must not undo it
        try:
            await self.notifier.notify(event, row, db=self.db)
        except Exception as e:
            logger.warning(
                "failed_to_send_appointment_email",
                email_event=event.value,
                appointment_id=str(row["id"]),
                error=str(e),
            )
