"""Tests for clinician conflict and availability checks."""

from datetime import date, time

import pytest

from care_scheduling.core.exceptions import ConflictException, ValidationException
from care_scheduling.schemas.appointments import (
    AppointmentCreate,
    AppointmentUpdate,
    ConflictCheckRequest,
)
from care_scheduling.services.appointment_service import AppointmentService
from care_scheduling.services.conflict_service import (
    ConflictService,
    intervals_overlap,
    slot_bounds,
)

DAY = date(2024, 6, 1)


def test_slot_bounds_half_open_minutes():
    assert slot_bounds(time(9, 0), 60) == (540, 600)
    assert slot_bounds(time(23, 0), 60) == (1380, 1440)


def test_slot_bounds_rejects_crossing_midnight():
    with pytest.raises(ValidationException):
        slot_bounds(time(23, 30), 60)


def test_slot_bounds_rejects_non_positive_duration():
    with pytest.raises(ValidationException):
        slot_bounds(time(9, 0), 0)


def test_intervals_overlap():
    assert intervals_overlap(540, 600, 570, 600)
    assert intervals_overlap(540, 600, 500, 560)
    assert intervals_overlap(540, 600, 550, 560)
    # Touching endpoints do not overlap
    assert not intervals_overlap(540, 600, 600, 630)
    assert not intervals_overlap(600, 630, 540, 600)


@pytest.mark.asyncio
async def test_overlapping_slot_conflicts(db_session, make_appointment):
    """09:30 for 30 minutes collides with 09:00 for 60 minutes."""
    existing = await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))

    result = await ConflictService(db_session).check_conflict("J. Thompson", DAY, time(9, 30), 30)

    assert result.conflict is True
    assert result.conflicting_appointment.id == existing["id"]


@pytest.mark.asyncio
async def test_back_to_back_slot_is_free(db_session, make_appointment):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))

    result = await ConflictService(db_session).check_conflict("J. Thompson", DAY, time(10, 0), 30)

    assert result.conflict is False
    assert result.conflicting_appointment is None


@pytest.mark.asyncio
async def test_slot_ending_at_existing_start_is_free(db_session, make_appointment):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))

    result = await ConflictService(db_session).check_conflict("J. Thompson", DAY, time(8, 0), 60)

    assert result.conflict is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["cancelled", "completed", "no_show"])
async def test_inactive_appointments_do_not_block(db_session, make_appointment, status):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0), status=status)

    result = await ConflictService(db_session).check_conflict("J. Thompson", DAY, time(9, 0), 60)

    assert result.conflict is False


@pytest.mark.asyncio
async def test_other_clinician_and_other_day_do_not_block(db_session, make_appointment):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0), clinician="R. Patel")
    await make_appointment(appointment_date=date(2024, 6, 2), appointment_time=time(9, 0))

    result = await ConflictService(db_session).check_conflict("J. Thompson", DAY, time(9, 0), 60)

    assert result.conflict is False


@pytest.mark.asyncio
async def test_excluded_appointment_does_not_conflict_with_itself(db_session, make_appointment):
    existing = await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))

    result = await ConflictService(db_session).check_conflict(
        "J. Thompson",
        DAY,
        time(9, 15),
        60,
        exclude_appointment_id=existing["id"],
    )

    assert result.conflict is False


@pytest.mark.asyncio
async def test_create_appointment_conflict_names_existing(db_session, make_appointment):
    existing = await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))
    service = AppointmentService(db_session)

    with pytest.raises(ConflictException) as exc_info:
        await service.create_appointment(
            AppointmentCreate(
                patient_name="Ben Ortiz",
                appointment_date=DAY,
                appointment_time=time(9, 30),
                duration_minutes=30,
                clinician="J. Thompson",
                address="3 Birch Lane",
            )
        )

    exc = exc_info.value
    assert exc.status_code == 409
    assert "J. Thompson" in exc.message
    assert "09:00 to 10:00" in exc.message
    assert exc.conflicting_appointment["id"] == str(existing["id"])
    assert exc.draft["appointment_time"] == "09:30:00"


@pytest.mark.asyncio
async def test_create_back_to_back_appointment_succeeds(db_session, make_appointment):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0))
    service = AppointmentService(db_session)

    created = await service.create_appointment(
        AppointmentCreate(
            patient_name="Ben Ortiz",
            appointment_date=DAY,
            appointment_time=time(10, 0),
            duration_minutes=30,
            clinician="J. Thompson",
            address="3 Birch Lane",
        )
    )

    assert created.status == "scheduled"
    assert created.appointment_time == time(10, 0)


@pytest.mark.asyncio
async def test_create_rejects_slot_crossing_midnight(db_session):
    service = AppointmentService(db_session)

    with pytest.raises(ValidationException):
        await service.create_appointment(
            AppointmentCreate(
                patient_name="Ben Ortiz",
                appointment_date=DAY,
                appointment_time=time(23, 30),
                duration_minutes=60,
                clinician="J. Thompson",
                address="3 Birch Lane",
            )
        )


@pytest.mark.asyncio
async def test_available_slots_skip_busy_times(db_session, make_appointment):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 0), duration_minutes=60)
    await make_appointment(appointment_date=DAY, appointment_time=time(13, 0), duration_minutes=90)
    await make_appointment(
        appointment_date=DAY,
        appointment_time=time(15, 0),
        status="cancelled",
    )

    slots = await ConflictService(db_session).available_slots(
        "J. Thompson",
        DAY,
        60,
        start_hour=8,
        end_hour=17,
        step_minutes=30,
    )

    assert time(8, 0) in slots
    assert time(8, 30) not in slots
    assert time(9, 0) not in slots
    assert time(9, 30) not in slots
    assert time(10, 0) in slots
    assert time(12, 0) in slots
    assert time(12, 30) not in slots
    assert time(14, 0) not in slots
    assert time(14, 30) in slots
    assert time(15, 0) in slots
    assert slots[-1] == time(17, 0)


def test_requests_drop_seconds_from_start_time():
    draft = AppointmentCreate(
        patient_name="Ben Ortiz",
        appointment_date=DAY,
        appointment_time=time(9, 0, 30, 250),
        clinician="J. Thompson",
        address="3 Birch Lane",
    )
    check = ConflictCheckRequest(
        clinician="J. Thompson",
        appointment_date=DAY,
        appointment_time=time(10, 0, 45),
    )
    update = AppointmentUpdate(appointment_time=time(11, 15, 5))

    assert draft.appointment_time == time(9, 0)
    assert check.appointment_time == time(10, 0)
    assert update.appointment_time == time(11, 15)


@pytest.mark.asyncio
async def test_stored_slot_matches_checked_slot(db_session):
    service = AppointmentService(db_session)
    created = await service.create_appointment(
        AppointmentCreate(
            patient_name="Ben Ortiz",
            appointment_date=DAY,
            appointment_time=time(9, 0, 30),
            duration_minutes=60,
            clinician="J. Thompson",
            address="3 Birch Lane",
        )
    )

    assert created.appointment_time == time(9, 0)

    conflicts = ConflictService(db_session)
    assert (await conflicts.check_conflict("J. Thompson", DAY, time(10, 0), 30)).conflict is False
    assert (await conflicts.check_conflict("J. Thompson", DAY, time(9, 59), 30)).conflict is True
