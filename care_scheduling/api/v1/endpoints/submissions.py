"""Submission endpoints: visit requests and provider referrals on the scheduling side."""

from uuid import UUID

from fastapi import APIRouter, status

from care_scheduling.dependencies import DatabaseSession, Notifier
from care_scheduling.schemas.appointments import AppointmentDraft, AppointmentResponse
from care_scheduling.schemas.submissions import (
    SubmissionResponse,
    SubmissionStatusUpdate,
    SubmissionType,
)
from care_scheduling.services.appointment_service import AppointmentService
from care_scheduling.services.submission_service import SubmissionService

router = APIRouter()


@router.get(
    "/{submission_type}/{submission_id}",
    response_model=SubmissionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Submissions"],
    summary="Get submission",
)
async def get_submission(
    submission_type: SubmissionType,
    submission_id: UUID,
    db: DatabaseSession,
) -> SubmissionResponse:
    """Get a visit request or referral in normalized form."""
    return await SubmissionService(db).get_submission(submission_type, submission_id)


@router.delete(
    "/{submission_type}/{submission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Submissions"],
    summary="Delete submission",
)
async def delete_submission(
    submission_type: SubmissionType,
    submission_id: UUID,
    db: DatabaseSession,
) -> None:
    """
    Delete a submission and every appointment created from it.

    Args:
        submission_type: Visit request or provider referral
        submission_id: Submission ID
        db: Database session
    """
    await SubmissionService(db).delete_submission(submission_type, submission_id)


@router.patch(
    "/{submission_type}/{submission_id}/status",
    response_model=SubmissionResponse,
    status_code=status.HTTP_200_OK,
    tags=["Submissions"],
    summary="Update submission status",
)
async def update_submission_status(
    submission_type: SubmissionType,
    submission_id: UUID,
    data: SubmissionStatusUpdate,
    db: DatabaseSession,
) -> SubmissionResponse:
    """
    Move a submission through intake, e.g. mark it contacted.

    Args:
        submission_type: Visit request or provider referral
        submission_id: Submission ID
        data: New status
        db: Database session

    Returns:
        Updated submission
    """
    return await SubmissionService(db).update_status(submission_type, submission_id, data.status)


@router.post(
    "/{submission_type}/{submission_id}/schedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Submissions"],
    summary="Schedule appointment for submission",
)
async def schedule_submission(
    submission_type: SubmissionType,
    submission_id: UUID,
    draft: AppointmentDraft,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """
    Create an appointment from a submission and mark the submission scheduled.

    Patient contact fields left out of the draft are copied from the
    submission. A 409 response carries the colliding appointment and the
    draft so the slot can be corrected and resubmitted.

    Args:
        submission_type: Visit request or provider referral
        submission_id: Submission ID
        draft: Slot and patient details
        db: Database session
        notifier: Patient email notifier

    Returns:
        Created appointment
    """
    service = AppointmentService(db, notifier)
    return await service.schedule_from_submission(submission_id, submission_type, draft)
