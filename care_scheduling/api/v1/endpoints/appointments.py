"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from care_scheduling.config import settings
from care_scheduling.dependencies import DatabaseSession, Notifier
from care_scheduling.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailabilityResponse,
    ConflictCheckRequest,
    ConflictCheckResult,
)
from care_scheduling.services.appointment_service import AppointmentService
from care_scheduling.services.conflict_service import ConflictService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """
    Schedule an appointment directly.

    Args:
        data: Appointment creation data
        db: Database session
        notifier: Patient email notifier

    Returns:
        Created appointment
    """
    service = AppointmentService(db, notifier)
    return await service.create_appointment(data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    clinician: str | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering.

    Args:
        db: Database session
        status_filter: Filter by status
        clinician: Filter by clinician
        from_date: Earliest appointment date
        to_date: Latest appointment date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        clinician=clinician,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(filters)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Free slots for a clinician",
)
async def get_availability(
    db: DatabaseSession,
    clinician: str = Query(..., min_length=1),
    appointment_date: date = Query(..., alias="date"),
    duration_minutes: int = Query(60, gt=0, le=720),
) -> AvailabilityResponse:
    """
    List the start times on the practice's slot grid that are still free.

    Args:
        db: Database session
        clinician: Clinician to check
        appointment_date: Day to check
        duration_minutes: Length of the visit to fit

    Returns:
        Free start times
    """
    slots = await ConflictService(db).available_slots(
        clinician,
        appointment_date,
        duration_minutes,
        start_hour=settings.slot_start_hour,
        end_hour=settings.slot_end_hour,
        step_minutes=settings.slot_step_minutes,
    )
    return AvailabilityResponse(
        clinician=clinician,
        appointment_date=appointment_date,
        duration_minutes=duration_minutes,
        slots=slots,
    )


@router.post(
    "/conflicts/check",
    response_model=ConflictCheckResult,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Check a slot for conflicts",
)
async def check_conflict(
    data: ConflictCheckRequest,
    db: DatabaseSession,
) -> ConflictCheckResult:
    """
    Test a candidate slot against the clinician's active appointments.

    Args:
        data: Candidate slot
        db: Database session

    Returns:
        Conflict flag and the colliding appointment, if any
    """
    return await ConflictService(db).check_conflict(
        data.clinician,
        data.appointment_date,
        data.appointment_time,
        data.duration_minutes,
        exclude_appointment_id=data.exclude_appointment_id,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
    """
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    db: DatabaseSession,
    notifier: Notifier,
) -> AppointmentResponse:
    """
    Update an existing appointment.

    Args:
        appointment_id: Appointment ID
        data: Update data
        db: Database session
        notifier: Patient email notifier

    Returns:
        Updated appointment
    """
    service = AppointmentService(db, notifier)
    return await service.update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Move an appointment to a new status, mirroring it onto its submission.

    Args:
        appointment_id: Appointment ID
        data: Status update data
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.transition(appointment_id, data.status)
