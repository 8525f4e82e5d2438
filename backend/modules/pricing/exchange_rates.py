"""
Exchange rates from exchangerate.host.

Rates are cached per base currency. After the first successful fetch we
always have some rates to return: a failed refresh keeps the previous
rates and reports the failure. Only a failure with nothing cached raises.
"""

import logging
import time
from typing import Optional

import httpx

from shared.reporting import report_error

from .exceptions import ExchangeRateError

logger = logging.getLogger(__name__)

ExchangeRates = dict[str, float]


class ExchangeRateService:
    """Read-through cache of the latest exchange rates."""

    def __init__(
        self,
        base_url: str,
        max_age_seconds: float = 60 * 60,
        timeout: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._max_age = max_age_seconds
        self._timeout = timeout
        self._cache: dict[str, tuple[ExchangeRates, float]] = {}

    async def _fetch(self, base: str) -> ExchangeRates:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/latest", params={"base": base})
        except httpx.RequestError as e:
            raise ExchangeRateError(base, str(e)) from e

        data = response.json() if response.content else {}
        if response.status_code >= 400 or not data.get("success", True) or not data.get("rates"):
            logger.warning(f"Unexpected exchange rate response: {data}")
            raise ExchangeRateError(base, f"status {response.status_code}")

        return {currency: float(rate) for currency, rate in data["rates"].items()}

    def cached_rates(self, base: str) -> Optional[ExchangeRates]:
        entry = self._cache.get(base)
        return entry[0] if entry else None

    async def get_rates(self, base: str = "USD") -> ExchangeRates:
        """
        Get rates for converting from the base currency.

        Raises:
            ExchangeRateError: If no rates have ever been fetched for this base
        """
        entry = self._cache.get(base)
        if entry and time.monotonic() - entry[1] < self._max_age:
            return entry[0]

        try:
            rates = await self._fetch(base)
        except ExchangeRateError as e:
            report_error(e)
            if entry:
                return entry[0]
            raise

        self._cache[base] = (rates, time.monotonic())
        logger.info(f"Refreshed {base} exchange rates: {len(rates)} currencies")
        return rates
