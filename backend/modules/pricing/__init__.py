"""
Pricing module.

Resolves region-aware prices from the client IP.

Public API:
- IPricingService: Interface for pricing lookups
- PriceTable, IpLocation, ResolvedPricing: Pricing data
- resolve_price_table: Pure table resolution for a location
- PRICING: The shipped price tables
"""

from .interfaces import IPricingService
from .models import (
    IpLocation,
    PriceTable,
    ResolvedPricing,
    ProductPrice,
    PricesResponse,
)
from .resolver import resolve_price_table, monthly_equivalent
from .tables import PRICING, DEFAULT_TABLE_KEY
from .exceptions import (
    PricingError,
    GeolocationError,
    ExchangeRateError,
)

__all__ = [
    # Interface
    "IPricingService",
    # Models
    "IpLocation",
    "PriceTable",
    "ResolvedPricing",
    "ProductPrice",
    "PricesResponse",
    "resolve_price_table",
    "monthly_equivalent",
    "PRICING",
    "DEFAULT_TABLE_KEY",
    # Exceptions
    "PricingError",
    "GeolocationError",
    "ExchangeRateError",
]
