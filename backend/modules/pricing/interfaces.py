"""
Pricing module interface.

The checkout flow depends on IPricingService to get the same prices the
buyer saw on the pricing page.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import PricesResponse, ResolvedPricing


@runtime_checkable
class IPricingService(Protocol):
    """Interface for region-aware pricing."""

    async def get_pricing_for_ip(self, ip: Optional[str]) -> ResolvedPricing:
        """
        Resolve the price table for a client IP.

        Never fails: lookup problems resolve to the default table.

        Args:
            ip: Client IP, or None when unknown

        Returns:
            The price table and, when known, the location it was picked for
        """
        ...

    async def get_product_prices(self, ip: Optional[str]) -> PricesResponse:
        """
        List every priced product for a client IP.

        Args:
            ip: Client IP, or None when unknown

        Returns:
            The price listing response body
        """
        ...
