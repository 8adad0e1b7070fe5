"""Appointment status to submission status mirroring rule."""

from care_scheduling.schemas.appointments import AppointmentStatus
from care_scheduling.schemas.submissions import SubmissionStatus

# None means the submission keeps its current status
STATUS_MIRROR: dict[AppointmentStatus, SubmissionStatus | None] = {
    AppointmentStatus.SCHEDULED: SubmissionStatus.SCHEDULED,
    AppointmentStatus.COMPLETED: SubmissionStatus.COMPLETED,
    AppointmentStatus.CANCELLED: SubmissionStatus.CANCELLED,
    AppointmentStatus.NO_SHOW: None,
}


def mirrored_submission_status(status: AppointmentStatus) -> SubmissionStatus | None:
    """Return the status a linked submission should take, if any."""
    return STATUS_MIRROR[status]
