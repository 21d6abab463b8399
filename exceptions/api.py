"""
Remote commerce API exceptions.

Every failure of the API client is one of these. The `kind` attribute tells
UI callers whether to prompt a re-login or offer a retry button.
"""

from enums.api_failure_kind import ApiFailureKind
from .base import StorefrontException


class ApiException(StorefrontException):
    """Base exception for remote API errors."""

    kind: ApiFailureKind = ApiFailureKind.RETRYABLE

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details)

    @property
    def is_retryable(self) -> bool:
        return self.kind == ApiFailureKind.RETRYABLE


class SessionExpiredException(ApiException):
    """Raised when the server rejects the bearer token (401 / expired token)."""

    kind = ApiFailureKind.SESSION_EXPIRED

    def __init__(self, endpoint: str, server_message: str | None = None):
        super().__init__(
            f"Session expired while calling {endpoint}",
            details={'endpoint': endpoint, 'server_message': server_message}
        )
        self.endpoint = endpoint
        self.server_message = server_message


class ApiUnavailableException(ApiException):
    """Raised on transport errors, timeouts and 5xx responses."""

    kind = ApiFailureKind.RETRYABLE

    def __init__(self, endpoint: str, reason: str, status: int | None = None):
        super().__init__(
            f"Request to {endpoint} failed: {reason}",
            details={'endpoint': endpoint, 'reason': reason, 'status': status}
        )
        self.endpoint = endpoint
        self.reason = reason
        self.status = status


class InvalidApiResponseException(ApiException):
    """Raised when a 2xx body is not JSON or doesn't match the expected shape."""

    kind = ApiFailureKind.RETRYABLE

    def __init__(self, endpoint: str, reason: str):
        super().__init__(
            f"Invalid response from {endpoint}: {reason}",
            details={'endpoint': endpoint, 'reason': reason}
        )
        self.endpoint = endpoint
        self.reason = reason


class ApiRequestRejectedException(ApiException):
    """Raised on 4xx responses other than an expired session."""

    kind = ApiFailureKind.REJECTED

    def __init__(self, endpoint: str, status: int, server_message: str):
        super().__init__(
            server_message,
            details={'endpoint': endpoint, 'status': status}
        )
        self.endpoint = endpoint
        self.status = status
        self.server_message = server_message
