"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Not found errors (404)
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    AUDIENCE_NOT_FOUND = "AUDIENCE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_IDENTIFIER = "MISSING_IDENTIFIER"

    # Conflict errors (409)
    UNIQUENESS_CONFLICT = "UNIQUENESS_CONFLICT"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500/503)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class MissingIdentifierError(AppException):
    """No usable identifier was supplied where one is required."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.MISSING_IDENTIFIER,
            message="At least one of email, user_id, or anonymous_id is required",
            status_code=400,
        )


class PayloadValidationError(AppException):
    """Malformed audience definition, trait bag or property bag."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=400,
            details={"field": field} if field else None,
        )


class UniquenessConflictError(AppException):
    """A concurrent write claimed the same email or user_id."""

    def __init__(self, message: str = "Identifier already claimed by another profile") -> None:
        super().__init__(
            error_code=ErrorCode.UNIQUENESS_CONFLICT,
            message=message,
            status_code=409,
        )


class ProfileNotFoundError(AppException):
    """Profile not found."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.PROFILE_NOT_FOUND,
            message=f"Profile not found: {profile_id}",
            status_code=404,
            details={"profile_id": profile_id},
        )


class AudienceNotFoundError(AppException):
    """Audience not found."""

    def __init__(self, audience_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.AUDIENCE_NOT_FOUND,
            message=f"Audience not found: {audience_id}",
            status_code=404,
            details={"audience_id": audience_id},
        )


class StoreUnavailableError(AppException):
    """The transactional backend failed or timed out. Safe to retry."""

    def __init__(self, message: str = "Profile store unavailable, retry later") -> None:
        super().__init__(
            error_code=ErrorCode.STORE_UNAVAILABLE,
            message=message,
            status_code=503,
            details={"retryable": True},
        )
