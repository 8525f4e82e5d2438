"""
Billing module interface.

The checkout route depends on ICheckoutService, not on which payment
provider currently handles new checkouts.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ICheckoutService(Protocol):
    """Interface for starting a checkout."""

    async def get_checkout_url(
        self,
        *,
        email: Optional[str],
        sku: Optional[str],
        quantity: Optional[int],
        source: Optional[str],
        client_ip: Optional[str],
        return_url: Optional[str] = None,
        passthrough: Optional[str] = None,
        discount_code: Optional[str] = None,
    ) -> str:
        """
        Build the provider checkout URL for a purchase.

        Args:
            email: Buyer email, or "*" to leave it for the buyer to fill in
            sku: Product SKU
            quantity: Seat count, required for team SKUs
            source: Where the checkout was started from
            client_ip: Buyer IP, used to pick regional prices
            return_url: Where to send the buyer after checkout
            passthrough: JSON object to carry through to webhooks
            discount_code: Requested discount code

        Returns:
            The URL to redirect the buyer to

        Raises:
            InvalidCheckoutRequestError: If parameters are missing or invalid
            CheckoutError: If the provider can't offer this checkout
        """
        ...
