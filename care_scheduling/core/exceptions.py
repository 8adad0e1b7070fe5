"""Custom application exceptions."""

from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Referenced appointment or submission does not exist."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ValidationException(AppException):
    """Malformed scheduling or transition input, rejected before touching the store."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


class ConflictException(AppException):
    """
    Candidate slot overlaps an active appointment of the same clinician.

    Carries the colliding appointment so the operator can pick another slot,
    and the rejected draft so the caller can correct and resubmit it.
    """

    def __init__(
        self,
        message: str = "Conflict",
        conflicting_appointment: dict[str, Any] | None = None,
        draft: dict[str, Any] | None = None,
    ):
        """Initialize with 409 status code."""
        self.conflicting_appointment = conflicting_appointment
        self.draft = draft
        details: dict[str, Any] = {}
        if conflicting_appointment is not None:
            details["conflicting_appointment"] = conflicting_appointment
        if draft is not None:
            details["draft"] = draft
        super().__init__(message, status_code=409, details=details or None)


class DependencyException(AppException):
    """Store or email collaborator unreachable or erroring; retryable."""

    def __init__(self, message: str = "Dependency unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)
