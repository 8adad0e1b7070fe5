"""Submission schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class SubmissionType(str, Enum):
    """Kind of inbound submission an appointment can originate from."""

    VISIT_REQUEST = "visit_request"
    PROVIDER_REFERRAL = "provider_referral"


class SubmissionStatus(str, Enum):
    """Submission status enumeration."""

    PENDING = "pending"
    CONTACTED = "contacted"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubmissionStatusUpdate(BaseModel):
    """Schema for a manual submission status change."""

    status: SubmissionStatus


class SubmissionResponse(BaseModel):
    """Normalized view over visit requests and provider referrals."""

    id: UUID
    submission_type: SubmissionType
    patient_name: str
    patient_phone: str | None = None
    patient_email: str | None = None
    address: str | None = None
    status: SubmissionStatus
    created_at: datetime
    updated_at: datetime
