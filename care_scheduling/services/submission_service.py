"""Submission service for the scheduling side of visit requests and referrals."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import Table, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.core.exceptions import NotFoundException, ValidationException
from care_scheduling.models.submissions import provider_referrals, visit_requests
from care_scheduling.schemas.submissions import (
    SubmissionResponse,
    SubmissionStatus,
    SubmissionType,
)
from care_scheduling.services.appointment_store import AppointmentStore

logger = structlog.get_logger(__name__)

SUBMISSION_TABLES: dict[SubmissionType, Table] = {
    SubmissionType.VISIT_REQUEST: visit_requests,
    SubmissionType.PROVIDER_REFERRAL: provider_referrals,
}

# Appointment column holding the back-reference for each submission type
APPOINTMENT_LINK_COLUMNS: dict[SubmissionType, str] = {
    SubmissionType.VISIT_REQUEST: "visit_request_id",
    SubmissionType.PROVIDER_REFERRAL: "provider_referral_id",
}


def parse_submission_type(value: SubmissionType | str) -> SubmissionType:
    """Coerce a submission type, rejecting unknown values."""
    try:
        return SubmissionType(value)
    except ValueError:
        raise ValidationException(f"Unknown submission type: {value}")


def contact_details(submission_type: SubmissionType, row: dict[str, Any]) -> dict[str, Any]:
    """Patient contact fields of a submission, keyed like appointment columns."""
    if submission_type == SubmissionType.VISIT_REQUEST:
        return {
            "patient_name": row["patient_name"],
            "patient_phone": row["phone"],
            "patient_email": row["email"],
            "address": row["address"],
        }
    return {
        "patient_name": row["patient_name"],
        "patient_phone": row["patient_phone"],
        "patient_email": row["patient_email"],
        "address": row["patient_address"],
    }


class SubmissionService:
    """Service for submission lookups and status changes."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_row(
        self,
        submission_type: SubmissionType,
        submission_id: UUID,
        for_update: bool = False,
    ) -> dict[str, Any]:
        """
        Fetch a submission row.

        Raises:
            NotFoundException: If the submission does not exist
        """
        table = SUBMISSION_TABLES[submission_type]
        stmt = select(table).where(table.c.id == submission_id)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise NotFoundException(f"{submission_type.value.replace('_', ' ').capitalize()} not found")

        return dict(row._mapping)

    async def get_submission(
        self,
        submission_type: SubmissionType | str,
        submission_id: UUID,
    ) -> SubmissionResponse:
        """Get a submission in its normalized form."""
        submission_type = parse_submission_type(submission_type)
        row = await self.get_row(submission_type, submission_id)
        return self.to_response(submission_type, row)

    async def set_status(
        self,
        submission_type: SubmissionType,
        submission_id: UUID,
        status: SubmissionStatus,
    ) -> bool:
        """
        Change a submission's status without committing.

        Returns:
            False if the submission no longer exists
        """
        table = SUBMISSION_TABLES[submission_type]
        result = await self.db.execute(
            update(table)
            .where(table.c.id == submission_id)
            .values(status=status.value, updated_at=datetime.now(UTC))
        )
        return result.rowcount > 0

    async def has_scheduled_appointment(
        self,
        submission_type: SubmissionType,
        submission_id: UUID,
    ) -> bool:
        """Whether an appointment linked to the submission is still scheduled."""
        linked = await AppointmentStore(self.db).find_scheduled_linked(
            APPOINTMENT_LINK_COLUMNS[submission_type],
            submission_id,
        )
        return bool(linked)

    async def update_status(
        self,
        submission_type: SubmissionType | str,
        submission_id: UUID,
        status: SubmissionStatus,
    ) -> SubmissionResponse:
        """
        Manually move a submission through its intake workflow.

        A submission with a scheduled appointment keeps its status; it follows
        the appointment instead.

        Raises:
            ValidationException: If asked to mark it scheduled, or it has a scheduled appointment
            NotFoundException: If the submission does not exist
        """
        submission_type = parse_submission_type(submission_type)

        if status == SubmissionStatus.SCHEDULED:
            raise ValidationException(
                "Submissions become scheduled only by scheduling an appointment for them"
            )

        try:
            await self.get_row(submission_type, submission_id, for_update=True)
            if await self.has_scheduled_appointment(submission_type, submission_id):
                raise ValidationException(
                    "Submission has a scheduled appointment; change the appointment's status instead"
                )
            await self.set_status(submission_type, submission_id, status)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "submission_status_changed",
            submission_type=submission_type.value,
            submission_id=str(submission_id),
            status=status.value,
        )
        return await self.get_submission(submission_type, submission_id)

    async def delete_submission(
        self,
        submission_type: SubmissionType | str,
        submission_id: UUID,
    ) -> int:
        """
        Delete a submission together with the appointments it owns.

        Returns:
            Number of appointments removed
        """
        submission_type = parse_submission_type(submission_type)
        await self.get_row(submission_type, submission_id)

        try:
            removed = await AppointmentStore(self.db).delete_linked(
                APPOINTMENT_LINK_COLUMNS[submission_type],
                submission_id,
            )
            table = SUBMISSION_TABLES[submission_type]
            await self.db.execute(delete(table).where(table.c.id == submission_id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "submission_deleted",
            submission_type=submission_type.value,
            submission_id=str(submission_id),
            appointments_removed=removed,
        )
        return removed

    @staticmethod
    def to_response(submission_type: SubmissionType, row: dict[str, Any]) -> SubmissionResponse:
        """Normalize a visit request or referral row."""
        return SubmissionResponse(
            id=row["id"],
            submission_type=submission_type,
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **contact_details(submission_type, row),
        )
