"""
Exception hierarchy shared by the intake gateway and the analysis service.

Every error carries a machine-readable code, the HTTP status it maps to and a
client-safe message. Raw upstream messages belong in logs, never in ``message``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Error codes exposed in the response envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ReviewRelayError(Exception):
    """Base class for errors rendered into the uniform error envelope."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ReviewRelayError):
    """Malformed or missing input. Never retried."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class PayloadTooLargeError(ValidationError):
    """Request body exceeded the configured ceiling."""

    status_code = 413


class AuthenticationError(ReviewRelayError):
    """Webhook signature could not be verified."""

    code = ErrorCode.AUTHENTICATION_ERROR
    status_code = 401


class RateLimitExceeded(ReviewRelayError):
    """Client exceeded its request allowance for the current window."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    status_code = 429


class ExternalServiceError(ReviewRelayError):
    """A downstream dependency failed or returned an unusable payload."""

    code = ErrorCode.EXTERNAL_SERVICE_ERROR
    status_code = 502
    stage: Optional[str] = None

    def __init__(self, message: str, details: Optional[Any] = None):
        if details is None and self.stage:
            details = {"stage": self.stage}
        super().__init__(message, details)


class DiffRetrievalError(ExternalServiceError):
    """Fetching the pull request diff from the provider failed."""

    stage = "diff_fetch"


class ReviewServiceError(ExternalServiceError):
    """Forwarding to the analysis service failed."""

    stage = "review_service"


class PublicationError(ExternalServiceError):
    """Posting the review comment to the provider failed."""

    stage = "publication"


class UpstreamTimeoutError(ReviewRelayError):
    """An outbound hop exceeded its timeout budget."""

    code = ErrorCode.TIMEOUT_ERROR
    status_code = 504


class InternalError(ReviewRelayError):
    """Anything not otherwise classified."""

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500
