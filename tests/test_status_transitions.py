"""Tests for appointment status transitions and submission mirroring."""

from datetime import date, time
from uuid import uuid4

import pytest
from sqlalchemy import select

from care_scheduling.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from care_scheduling.models import provider_referrals, visit_requests
from care_scheduling.schemas.appointments import AppointmentStatus
from care_scheduling.schemas.submissions import SubmissionStatus
from care_scheduling.services.appointment_service import AppointmentService
from care_scheduling.services.status_mirror import STATUS_MIRROR, mirrored_submission_status


async def _submission_status(session_factory, table, submission_id) -> str:
    async with session_factory() as session:
        result = await session.execute(select(table.c.status).where(table.c.id == submission_id))
        return result.scalar_one()


def test_mirror_covers_every_status():
    assert set(STATUS_MIRROR) == set(AppointmentStatus)


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (AppointmentStatus.SCHEDULED, SubmissionStatus.SCHEDULED),
        (AppointmentStatus.COMPLETED, SubmissionStatus.COMPLETED),
        (AppointmentStatus.CANCELLED, SubmissionStatus.CANCELLED),
        (AppointmentStatus.NO_SHOW, None),
    ],
)
def test_mirrored_submission_status(status, expected):
    assert mirrored_submission_status(status) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["completed", "cancelled"])
async def test_transition_mirrors_onto_visit_request(
    db_session, session_factory, make_visit_request, make_appointment, status
):
    visit = await make_visit_request(status="scheduled")
    appointment = await make_appointment(visit_request_id=visit["id"])

    updated = await AppointmentService(db_session).transition(appointment["id"], status)

    assert updated.status == status
    assert await _submission_status(session_factory, visit_requests, visit["id"]) == status


@pytest.mark.asyncio
async def test_transition_mirrors_onto_referral(
    db_session, session_factory, make_referral, make_appointment
):
    referral = await make_referral(status="scheduled")
    appointment = await make_appointment(provider_referral_id=referral["id"])

    await AppointmentService(db_session).transition(appointment["id"], AppointmentStatus.COMPLETED)

    assert await _submission_status(session_factory, provider_referrals, referral["id"]) == "completed"


@pytest.mark.asyncio
async def test_no_show_leaves_submission_untouched(
    db_session, session_factory, make_visit_request, make_appointment
):
    visit = await make_visit_request(status="scheduled")
    appointment = await make_appointment(visit_request_id=visit["id"])

    updated = await AppointmentService(db_session).transition(appointment["id"], "no_show")

    assert updated.status == "no_show"
    assert await _submission_status(session_factory, visit_requests, visit["id"]) == "scheduled"


@pytest.mark.asyncio
async def test_transition_without_link_changes_only_appointment(db_session, make_appointment):
    appointment = await make_appointment()

    updated = await AppointmentService(db_session).transition(appointment["id"], "cancelled")

    assert updated.status == "cancelled"
    assert updated.visit_request_id is None


@pytest.mark.asyncio
async def test_dangling_link_is_ignored(db_session, make_appointment):
    appointment = await make_appointment(visit_request_id=uuid4())

    updated = await AppointmentService(db_session).transition(appointment["id"], "completed")

    assert updated.status == "completed"


@pytest.mark.asyncio
async def test_transition_unknown_status(db_session, make_appointment):
    appointment = await make_appointment()

    with pytest.raises(ValidationException):
        await AppointmentService(db_session).transition(appointment["id"], "rescheduled")


@pytest.mark.asyncio
async def test_transition_unknown_appointment(db_session):
    with pytest.raises(NotFoundException):
        await AppointmentService(db_session).transition(uuid4(), "cancelled")


@pytest.mark.asyncio
async def test_reactivation_checks_for_conflicts(db_session, make_appointment):
    day = date(2026, 11, 2)
    cancelled = await make_appointment(
        appointment_date=day,
        appointment_time=time(9, 0),
        status="cancelled",
    )
    # The freed slot was given to someone else
    await make_appointment(appointment_date=day, appointment_time=time(9, 30), patient_name="Other")

    with pytest.raises(ConflictException):
        await AppointmentService(db_session).transition(cancelled["id"], "scheduled")

    current = await AppointmentService(db_session).get_appointment(cancelled["id"])
    assert current.status == "cancelled"


@pytest.mark.asyncio
async def test_reactivation_into_free_slot(db_session, session_factory, make_visit_request, make_appointment):
    visit = await make_visit_request(status="cancelled")
    appointment = await make_appointment(visit_request_id=visit["id"], status="cancelled")

    updated = await AppointmentService(db_session).transition(appointment["id"], "scheduled")

    assert updated.status == "scheduled"
    assert await _submission_status(session_factory, visit_requests, visit["id"]) == "scheduled"


@pytest.mark.asyncio
async def test_any_status_can_move_to_any_other(db_session, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    for status in ["completed", "no_show", "cancelled", "completed", "scheduled"]:
        updated = await service.transition(appointment["id"], status)
        assert updated.status == status
