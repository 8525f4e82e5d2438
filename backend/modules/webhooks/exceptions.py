"""
Webhook module exceptions.

These exceptions are raised by the webhook module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import StatusError


class SignatureInvalid(StatusError):
    """
    Raised when a webhook signature doesn't verify.

    The webhook is rejected with no state changes.
    """

    def __init__(self, message: str = "Webhook signature was invalid", provider: Optional[str] = None):
        super().__init__(
            403,
            message,
            code="WEBHOOK_VERIFICATION_FAILED",
            details={"provider": provider} if provider else {},
        )


class MalformedWebhookError(StatusError):
    """Raised when a webhook body is missing fields we need."""

    def __init__(self, message: str):
        super().__init__(400, message, code="MALFORMED_WEBHOOK")
