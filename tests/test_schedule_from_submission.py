"""Tests for scheduling appointments from visit requests and referrals."""

from datetime import date, time
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from care_scheduling.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from care_scheduling.models import appointments, email_logs, visit_requests
from care_scheduling.schemas.appointments import AppointmentDraft
from care_scheduling.schemas.submissions import SubmissionStatus, SubmissionType
from care_scheduling.services.appointment_service import AppointmentService
from care_scheduling.services.submission_service import SubmissionService

DAY = date(2026, 11, 3)


def _draft(**overrides) -> AppointmentDraft:
    values = {
        "appointment_date": DAY,
        "appointment_time": time(10, 0),
        "duration_minutes": 60,
        "clinician": "J. Thompson",
    }
    values.update(overrides)
    return AppointmentDraft(**values)


async def _count_appointments(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(appointments))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_schedule_visit_request_links_and_marks_scheduled(
    db_session, session_factory, make_visit_request, notifier, email_sender
):
    visit = await make_visit_request()
    service = AppointmentService(db_session, notifier)

    created = await service.schedule_from_submission(visit["id"], "visit_request", _draft())

    assert created.visit_request_id == visit["id"]
    assert created.provider_referral_id is None
    assert created.status == "scheduled"
    assert created.reminder_sent is False

    async with session_factory() as session:
        result = await session.execute(
            select(visit_requests.c.status).where(visit_requests.c.id == visit["id"])
        )
        assert result.scalar_one() == "scheduled"

    assert len(email_sender.sent_to("walter@example.com")) == 1
    assert "confirmed" in email_sender.sent[0]["subject"]


@pytest.mark.asyncio
async def test_contact_details_filled_from_submission(db_session, make_visit_request):
    visit = await make_visit_request()

    created = await AppointmentService(db_session).schedule_from_submission(
        visit["id"], SubmissionType.VISIT_REQUEST, _draft()
    )

    assert created.patient_name == "Walter Green"
    assert created.patient_phone == "555-987-6543"
    assert created.patient_email == "walter@example.com"
    assert created.address == "48 Pine Avenue"


@pytest.mark.asyncio
async def test_draft_fields_override_submission(db_session, make_referral):
    referral = await make_referral()

    created = await AppointmentService(db_session).schedule_from_submission(
        referral["id"],
        "provider_referral",
        _draft(patient_email="harold.king@example.com", address="9 Cedar Road"),
    )

    assert created.provider_referral_id == referral["id"]
    assert created.patient_name == "Harold King"
    assert created.patient_email == "harold.king@example.com"
    assert created.address == "9 Cedar Road"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "contacted"])
async def test_conflict_leaves_submission_and_store_unchanged(
    db_session, session_factory, make_visit_request, make_appointment, email_sender, notifier, status
):
    await make_appointment(appointment_date=DAY, appointment_time=time(9, 30))
    visit = await make_visit_request(status=status)
    before = await _count_appointments(session_factory)
    service = AppointmentService(db_session, notifier)

    with pytest.raises(ConflictException) as exc_info:
        await service.schedule_from_submission(visit["id"], "visit_request", _draft())

    assert exc_info.value.draft["clinician"] == "J. Thompson"
    assert exc_info.value.conflicting_appointment["appointment_time"] == "09:30:00"
    assert await _count_appointments(session_factory) == before
    assert email_sender.sent == []

    async with session_factory() as session:
        result = await session.execute(
            select(visit_requests.c.status).where(visit_requests.c.id == visit["id"])
        )
        assert result.scalar_one() == status


@pytest.mark.asyncio
async def test_failed_insert_does_not_mark_submission_scheduled(
    db_session, session_factory, make_visit_request, monkeypatch
):
    visit = await make_visit_request()
    service = AppointmentService(db_session)

    async def broken_insert(values):
        raise RuntimeError("store went away")

    monkeypatch.setattr(service.store, "insert", broken_insert)

    with pytest.raises(RuntimeError):
        await service.schedule_from_submission(visit["id"], "visit_request", _draft())

    async with session_factory() as session:
        result = await session.execute(
            select(visit_requests.c.status).where(visit_requests.c.id == visit["id"])
        )
        assert result.scalar_one() == "pending"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["scheduled", "completed"])
async def test_already_handled_submission_rejected(
    db_session, session_factory, make_visit_request, status
):
    visit = await make_visit_request(status=status)

    with pytest.raises(ValidationException):
        await AppointmentService(db_session).schedule_from_submission(
            visit["id"], "visit_request", _draft()
        )

    assert await _count_appointments(session_factory) == 0


@pytest.mark.asyncio
async def test_cancelled_submission_can_be_rescheduled(db_session, make_visit_request):
    visit = await make_visit_request(status="cancelled")

    created = await AppointmentService(db_session).schedule_from_submission(
        visit["id"], "visit_request", _draft()
    )

    assert created.status == "scheduled"


@pytest.mark.asyncio
async def test_unknown_submission(db_session):
    with pytest.raises(NotFoundException):
        await AppointmentService(db_session).schedule_from_submission(
            uuid4(), "visit_request", _draft()
        )


@pytest.mark.asyncio
async def test_unknown_submission_type(db_session):
    with pytest.raises(ValidationException):
        await AppointmentService(db_session).schedule_from_submission(
            uuid4(), "contact_form", _draft()
        )


@pytest.mark.asyncio
async def test_schedule_without_patient_email_skips_confirmation(
    db_session, session_factory, make_visit_request, notifier, email_sender
):
    visit = await make_visit_request(email=None)

    created = await AppointmentService(db_session, notifier).schedule_from_submission(
        visit["id"], "visit_request", _draft()
    )

    assert created.patient_email is None
    assert email_sender.sent == []


@pytest.mark.asyncio
async def test_email_failure_does_not_undo_scheduling(
    db_session, session_factory, make_visit_request, notifier, email_sender
):
    email_sender.fail_all = True
    visit = await make_visit_request()

    created = await AppointmentService(db_session, notifier).schedule_from_submission(
        visit["id"], "visit_request", _draft()
    )

    assert created.status == "scheduled"
    assert await _count_appointments(session_factory) == 1

    async with session_factory() as session:
        result = await session.execute(select(email_logs.c.status, email_logs.c.event))
        assert result.fetchall() == [("failed", "confirmation")]


@pytest.mark.asyncio
async def test_scheduled_submission_status_follows_its_appointment(
    db_session, session_factory, make_visit_request
):
    visit = await make_visit_request()
    await AppointmentService(db_session).schedule_from_submission(
        visit["id"], "visit_request", _draft()
    )

    with pytest.raises(ValidationException):
        await SubmissionService(db_session).update_status(
            "visit_request", visit["id"], SubmissionStatus.PENDING
        )

    async with session_factory() as session:
        result = await session.execute(
            select(visit_requests.c.status).where(visit_requests.c.id == visit["id"])
        )
        assert result.scalar_one() == "scheduled"


@pytest.mark.asyncio
async def test_submission_with_scheduled_appointment_cannot_be_scheduled_again(
    db_session, session_factory, make_visit_request, make_appointment
):
    # Status drifted to pending while its appointment is still on the books
    visit = await make_visit_request(status="pending")
    await make_appointment(visit_request_id=visit["id"], appointment_date=DAY)

    with pytest.raises(ValidationException):
        await AppointmentService(db_session).schedule_from_submission(
            visit["id"], "visit_request", _draft(appointment_time=time(14, 0))
        )

    assert await _count_appointments(session_factory) == 1


@pytest.mark.asyncio
async def test_submission_status_editable_after_appointment_cancelled(
    db_session, make_visit_request
):
    visit = await make_visit_request()
    service = AppointmentService(db_session)
    created = await service.schedule_from_submission(visit["id"], "visit_request", _draft())
    await service.transition(created.id, "cancelled")

    updated = await SubmissionService(db_session).update_status(
        "visit_request", visit["id"], SubmissionStatus.CONTACTED
    )

    assert updated.status == "contacted"
