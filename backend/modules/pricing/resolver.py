"""
Price table resolution.

Proxy and hosting traffic always gets the default table, so regional
discounts can't be had by routing through a cheaper country.
"""

from typing import Optional

from .models import IpLocation, PriceTable
from .tables import DEFAULT_TABLE_KEY, PRICING


def resolve_price_table(
    location: Optional[IpLocation],
    pricing: dict[str, PriceTable] = PRICING,
) -> PriceTable:
    """
    Pick the most specific price table for a location.

    Order: exact country, continent, first table with the same currency,
    then default. No location, proxy or hosting means default.
    """
    default = pricing[DEFAULT_TABLE_KEY]

    if location is None or location.proxy or location.hosting:
        return default

    country_table = pricing.get(f"country:{location.country_code3}")
    if country_table is not None:
        return country_table

    continent_table = pricing.get(f"continent:{location.continent_code}")
    if continent_table is not None:
        return continent_table

    for table in pricing.values():
        if table.currency == location.currency:
            return table

    return default


def monthly_equivalent(annual_price: float) -> float:
    """Display-only monthly price of an annual plan."""
    return annual_price / 12
