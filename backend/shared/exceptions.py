"""
Base exception classes for the accounts backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class AccountsError(Exception):
    """
    Base exception for all accounts backend errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class StatusError(AccountsError):
    """
    A caller-facing error with an explicit HTTP status.

    Used for validation failures (400), auth failures (401/403) and
    conflicts (409). The message is shown to the client as-is.
    """

    def __init__(
        self,
        status: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.status = status


class AuthenticationError(StatusError):
    """Authentication failed (invalid or missing credentials)."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(401, message, code="AUTHENTICATION_FAILED")


class ExternalServiceError(AccountsError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class UpstreamProviderError(ExternalServiceError):
    """
    A payment, identity or lookup provider returned a non-2xx or malformed response.

    The HTTP status of the upstream response is kept (when there was one)
    so retry policies can decide whether trying again is pointless.
    """

    def __init__(
        self,
        message: str,
        service: str,
        status: Optional[int] = None,
    ):
        super().__init__(message, service, code="UPSTREAM_PROVIDER_ERROR")
        self.status = status
        if status is not None:
            self.details["status"] = status


class DataInconsistencyError(AccountsError):
    """
    Two sources of truth disagree (mirror vs primary, membership vs seats).

    Always reported to operators, never raised to the request that found it.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code="DATA_INCONSISTENCY", details=details)
