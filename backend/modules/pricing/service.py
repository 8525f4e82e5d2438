"""
Pricing service.

Resolved prices are cached per IP so a buyer sees the same price on the
pricing page and at checkout. The cache is per process: other instances,
restarts and deploys can still change a price, which is accepted.
"""

import logging
from typing import Optional

from cachetools import TTLCache

from modules.billing.products import (
    PADDLE_PLAN_IDS,
    PRICED_SKUS,
    PRODUCT_TITLES,
    get_billing_interval,
)
from shared.reporting import report_error

from .exceptions import GeolocationError
from .geolocation import IpGeolocator
from .interfaces import IPricingService
from .models import (
    NetPrice,
    PricesResponse,
    PriceTable,
    ProductPrice,
    ProductPriceList,
    ResolvedPricing,
    SubscriptionInterval,
)
from .resolver import resolve_price_table
from .tables import PRICING

logger = logging.getLogger(__name__)

# Distinct client IPs held at once; the oldest are dropped first
PRICING_CACHE_SIZE = 50_000


class PricingService(IPricingService):
    """Resolves and caches regional pricing per client IP."""

    def __init__(
        self,
        geolocator: IpGeolocator,
        cache_ttl_seconds: float = 6 * 60 * 60,
        cache_size: int = PRICING_CACHE_SIZE,
        pricing: Optional[dict[str, PriceTable]] = None,
    ):
        self._geolocator = geolocator
        self._pricing = pricing or PRICING
        self._cache: TTLCache[str, ResolvedPricing] = TTLCache(maxsize=cache_size, ttl=cache_ttl_seconds)

    async def get_pricing_for_ip(self, ip: Optional[str]) -> ResolvedPricing:
        if not ip:
            report_error("No client IP data available")
            return ResolvedPricing(table=resolve_price_table(None, self._pricing))

        cached = self._cache.get(ip)
        if cached is not None:
            return cached

        try:
            location = await self._geolocator.locate(ip)
        except GeolocationError as e:
            report_error(e)
            location = None

        resolved = ResolvedPricing(
            table=resolve_price_table(location, self._pricing),
            location=location,
        )
        self._cache[ip] = resolved
        logger.debug(f"Resolved {resolved.table.currency} pricing for {ip}")
        return resolved

    async def get_product_prices(self, ip: Optional[str]) -> PricesResponse:
        table = (await self.get_pricing_for_ip(ip)).table

        products = [
            ProductPrice(
                product_id=PADDLE_PLAN_IDS[sku],
                sku=sku,
                product_title=PRODUCT_TITLES[sku],
                currency=table.currency,
                price=NetPrice(net=table.prices[sku]),
                subscription=SubscriptionInterval(interval=get_billing_interval(sku)),
            )
            for sku in PRICED_SKUS
        ]
        return PricesResponse(response=ProductPriceList(products=products))
