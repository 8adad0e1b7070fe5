"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentLocation(str, Enum):
    """Where the visit takes place."""

    IN_HOME = "in-home"
    CLINIC = "clinic"


class AppointmentType(str, Enum):
    """Visit type enumeration."""

    INITIAL = "initial"
    FOLLOW_UP = "follow-up"
    WOUND_ASSESSMENT = "wound-assessment"
    DRESSING_CHANGE = "dressing-change"


def _validate_phone(v: str | None) -> str | None:
    if v is None:
        return v
    # Remove common separators
    cleaned = v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
    if not cleaned.isdigit():
        raise ValueError("Phone number must contain only digits and separators")
    if len(cleaned) < 7:
        raise ValueError("Phone number must have at least 7 digits")
    return v


def _whole_minute(v: time | None) -> time | None:
    # Slots are scheduled to the minute; the overlap check compares minutes
    if v is None:
        return v
    return v.replace(second=0, microsecond=0)


class AppointmentDraft(BaseModel):
    """
    Slot and patient details for a not-yet-created appointment.

    Patient contact fields are optional here because scheduling from a
    submission fills them from the submission when omitted.
    """

    patient_name: str | None = Field(None, min_length=1, max_length=200)
    patient_phone: str | None = Field(None, max_length=20)
    patient_email: EmailStr | None = None
    appointment_date: date
    appointment_time: time
    duration_minutes: int = Field(default=60, gt=0, le=720)
    clinician: str = Field(..., min_length=1, max_length=200)
    location: AppointmentLocation = AppointmentLocation.IN_HOME
    address: str | None = Field(None, max_length=500)
    appointment_type: AppointmentType | None = None
    notes: str | None = Field(None, max_length=1000)

    @field_validator("patient_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _validate_phone(v)

    @field_validator("appointment_time")
    @classmethod
    def truncate_time(cls, v: time) -> time:
        """Drop seconds from the start time."""
        return _whole_minute(v)


class AppointmentCreate(AppointmentDraft):
    """Schema for creating a new appointment directly."""

    patient_name: str = Field(..., min_length=1, max_length=200)


class AppointmentUpdate(BaseModel):
    """Schema for editing an existing appointment."""

    patient_name: str | None = Field(None, min_length=1, max_length=200)
    patient_phone: str | None = Field(None, max_length=20)
    patient_email: EmailStr | None = None
    appointment_date: date | None = None
    appointment_time: time | None = None
    duration_minutes: int | None = Field(None, gt=0, le=720)
    clinician: str | None = Field(None, min_length=1, max_length=200)
    location: AppointmentLocation | None = None
    address: str | None = Field(None, max_length=500)
    appointment_type: AppointmentType | None = None
    notes: str | None = Field(None, max_length=1000)

    @field_validator("patient_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        return _validate_phone(v)

    @field_validator("appointment_time")
    @classmethod
    def truncate_time(cls, v: time | None) -> time | None:
        """Drop seconds from the start time."""
        return _whole_minute(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_name: str
    patient_phone: str | None = None
    patient_email: str | None = None
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    clinician: str
    location: AppointmentLocation
    address: str | None = None
    appointment_type: str | None = None
    notes: str | None = None
    status: AppointmentStatus
    visit_request_id: UUID | None = None
    provider_referral_id: UUID | None = None
    reminder_sent: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    clinician: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class ConflictCheckRequest(BaseModel):
    """Candidate slot to test against a clinician's schedule."""

    clinician: str = Field(..., min_length=1, max_length=200)
    appointment_date: date
    appointment_time: time
    duration_minutes: int = Field(default=60, gt=0, le=720)
    exclude_appointment_id: UUID | None = None

    @field_validator("appointment_time")
    @classmethod
    def truncate_time(cls, v: time) -> time:
        """Drop seconds from the start time."""
        return _whole_minute(v)


class ConflictCheckResult(BaseModel):
    """Outcome of a conflict check."""

    conflict: bool
    conflicting_appointment: AppointmentResponse | None = None


class AvailabilityResponse(BaseModel):
    """Free start times for a clinician on a given day."""

    clinician: str
    appointment_date: date
    duration_minutes: int
    slots: list[time]
