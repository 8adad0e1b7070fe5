"""Notification service for rendering and sending patient appointment emails."""

from datetime import date, time
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from care_scheduling.core.email_sender import EmailSender
from care_scheduling.core.email_templates import (
    appointment_details,
    confirmation_template,
    email_layout,
    reminder_template,
    update_template,
)
from care_scheduling.core.exceptions import DependencyException
from care_scheduling.models.email_logs import email_logs
from care_scheduling.schemas.appointments import AppointmentLocation
from care_scheduling.schemas.notifications import EmailEvent, EmailMessage

logger = structlog.get_logger(__name__)

SUBJECTS = {
    EmailEvent.CONFIRMATION: "Your appointment is confirmed",
    EmailEvent.UPDATE: "Your appointment has been updated",
    EmailEvent.REMINDER: "Reminder: your upcoming appointment",
}

TEMPLATES = {
    EmailEvent.CONFIRMATION: confirmation_template,
    EmailEvent.UPDATE: update_template,
    EmailEvent.REMINDER: reminder_template,
}


def format_when(appointment_date: date, appointment_time: time) -> str:
    """Format a slot like 'Monday, October 19, 2026 at 2:30 PM'."""
    hour = appointment_time.hour % 12 or 12
    meridiem = "AM" if appointment_time.hour < 12 else "PM"
    return (
        f"{appointment_date.strftime('%A, %B')} {appointment_date.day}, {appointment_date.year}"
        f" at {hour}:{appointment_time.minute:02d} {meridiem}"
    )


def format_location(location: str, address: str | None) -> str:
    """Describe where the visit takes place."""
    if location == AppointmentLocation.IN_HOME.value:
        return f"In-home visit at {address}" if address else "In-home visit"
    return "At the clinic"


class NotificationService:
    """Service for patient appointment emails."""

    def __init__(self, sender: EmailSender, practice_name: str):
        """
        Initialize service.

        Args:
            sender: Email delivery adapter
            practice_name: Practice name shown in subjects and signatures
        """
        self.sender = sender
        self.practice_name = practice_name

    def render(self, event: EmailEvent, appointment: dict[str, Any]) -> EmailMessage | None:
        """
        Render a patient email for an appointment.

        Args:
            event: Which email to produce
            appointment: Appointment row

        Returns:
            Rendered message, or None if the patient has no email address
        """
        recipient = (appointment.get("patient_email") or "").strip()
        if not recipient:
            return None

        details = appointment_details(
            when=format_when(appointment["appointment_date"], appointment["appointment_time"]),
            clinician=appointment["clinician"],
            duration_minutes=appointment["duration_minutes"],
            location=format_location(appointment["location"], appointment.get("address")),
        )
        subject = f"{SUBJECTS[event]} - {self.practice_name}"
        content = TEMPLATES[event](appointment["patient_name"], details, self.practice_name)

        return EmailMessage(
            recipient_email=recipient,
            recipient_name=appointment["patient_name"],
            subject=subject,
            body_html=email_layout(subject, content, self.practice_name),
            event=event,
        )

    async def deliver(self, message: EmailMessage, appointment_id: UUID | None = None) -> None:
        """
        Hand a rendered message to the email provider.

        Raises:
            DependencyException: If the provider did not accept the message
        """
        try:
            await self.sender.send(message.recipient_email, message.subject, message.body_html)
        except DependencyException as e:
            logger.warning(
                "email_delivery_failed",
                email_event=message.event.value,
                appointment_id=str(appointment_id) if appointment_id else None,
                error=e.message,
            )
            raise

        logger.info(
            "email_delivered",
            email_event=message.event.value,
            appointment_id=str(appointment_id) if appointment_id else None,
        )

    async def send(
        self,
        message: EmailMessage,
        db: AsyncSession | None = None,
        appointment_id: UUID | None = None,
    ) -> None:
        """
        Send a rendered message and record the attempt in the email log.

        Args:
            message: Rendered message
            db: Session used for the email log; skipped when None
            appointment_id: Appointment the message is about

        Raises:
            DependencyException: If the provider did not accept the message
        """
        try:
            await self.deliver(message, appointment_id)
        except DependencyException as e:
            if db is not None:
                await self.record(db, message, appointment_id, "failed", e.message)
            raise

        if db is not None:
            await self.record(db, message, appointment_id, "sent")

    async def notify(
        self,
        event: EmailEvent,
        appointment: dict[str, Any],
        db: AsyncSession | None = None,
    ) -> bool:
        """
        Render and send one appointment email.

        Returns:
            False if skipped because the patient has no email address
        """
        message = self.render(event, appointment)
        if message is None:
            logger.info(
                "email_skipped_no_recipient",
                email_event=event.value,
                appointment_id=str(appointment["id"]),
            )
            return False

        await self.send(message, db=db, appointment_id=appointment["id"])
        return True

    @staticmethod
    async def record(
        db: AsyncSession,
        message: EmailMessage,
        appointment_id: UUID | None,
        status: str,
        failure_reason: str | None = None,
    ) -> None:
        """Write one email_logs row. Failures are logged, never raised."""
        # The log is an audit trail; losing an entry must not fail the send
        try:
            await db.execute(
                insert(email_logs).values(
                    recipient_email=message.recipient_email,
                    recipient_name=message.recipient_name,
                    subject=message.subject,
                    body=message.body_html,
                    event=message.event.value,
                    context_type="appointment",
                    context_id=appointment_id,
                    status=status,
                    failure_reason=failure_reason,
                )
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning("email_log_write_failed", error=str(e))
