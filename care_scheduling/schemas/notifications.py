"""Email notification schemas."""

from enum import Enum

from pydantic import BaseModel


class EmailEvent(str, Enum):
    """Events that produce a patient email."""

    CONFIRMATION = "confirmation"
    UPDATE = "update"
    REMINDER = "reminder"


class EmailMessage(BaseModel):
    """Fully rendered message handed to the email sender."""

    recipient_email: str
    recipient_name: str | None = None
    subject: str
    body_html: str
    event: EmailEvent
