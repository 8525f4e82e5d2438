"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import StatusError


class CheckoutError(StatusError):
    """Raised when a checkout URL can't be built for the given options."""

    def __init__(self, message: str, sku: Optional[str] = None, status: int = 400):
        super().__init__(
            status,
            message,
            code="CHECKOUT_FAILED",
            details={"sku": sku} if sku else {},
        )


class InvalidCheckoutRequestError(StatusError):
    """Raised when a checkout request is missing or has invalid parameters."""

    def __init__(self, message: str):
        super().__init__(400, message, code="INVALID_CHECKOUT_REQUEST")


class UnknownSkuError(StatusError):
    """Raised for a SKU that isn't in the product catalogue."""

    def __init__(self, sku: Optional[str], plan_id: Optional[int | str] = None):
        super().__init__(
            400,
            f"Unknown subscription type: {sku}/{plan_id}",
            code="UNKNOWN_SKU",
            details={"sku": sku, "plan_id": plan_id},
        )
