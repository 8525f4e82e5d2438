"""
Checkout service.

Prices come from the same per-IP pricing cache as the price listing, so
the buyer is charged what they were shown.
"""

import json
import logging
import secrets
from typing import Optional

from modules.pricing.exchange_rates import ExchangeRateService
from modules.pricing.interfaces import IPricingService

from .checkout import PayProCheckoutConfig, build_paddle_checkout_url, build_paypro_checkout_url
from .exceptions import InvalidCheckoutRequestError
from .interfaces import ICheckoutService
from .models import CheckoutOptions
from .paddle_client import PaddleClient
from .products import PRICED_SKUS, is_team_subscription

logger = logging.getLogger(__name__)


def _missing_params_message(email: Optional[str], sku: Optional[str]) -> str:
    if not email and not sku:
        wanted = "an email address and plan SKU"
    elif not email:
        wanted = "an email address"
    elif not sku:
        wanted = "the SKU for a subscription plan"
    else:
        wanted = "a valid subscription plan SKU"
    return f"Checkout requires specifying {wanted}"


class CheckoutService(ICheckoutService):
    """Builds checkout URLs for the configured payment provider."""

    def __init__(
        self,
        pricing: IPricingService,
        exchange_rates: ExchangeRateService,
        paypro_config: PayProCheckoutConfig,
        paddle: PaddleClient,
        provider: str = "paypro",
    ):
        self._pricing = pricing
        self._exchange_rates = exchange_rates
        self._paypro_config = paypro_config
        self._paddle = paddle
        self._provider = provider

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
        if not email or not sku or sku not in PRICED_SKUS:
            raise InvalidCheckoutRequestError(_missing_params_message(email, sku))

        if is_team_subscription(sku) and not quantity:
            raise InvalidCheckoutRequestError("Quantity parameter is required for team SKUs")
        if quantity is not None and quantity < 1:
            raise InvalidCheckoutRequestError("Quantity must be at least 1")

        # '*' means the buyer enters their own email at checkout
        buyer_email = None if email == "*" else email.lower()

        resolved = await self._pricing.get_pricing_for_ip(client_ip)
        location = resolved.location

        checkout_passthrough = json.dumps(
            {
                **self._parse_passthrough(passthrough),
                "id": secrets.token_hex(8),
                "country": location.country_code3 if location else "unknown",
                "continent": location.continent_code if location else "unknown",
            }
        )

        options = CheckoutOptions(
            sku=sku,
            email=buyer_email,
            quantity=quantity,
            discount_code=discount_code or None,
            country_code=location.country_code if location else None,
            currency=resolved.table.currency,
            price=resolved.table.prices[sku],
            source=source or "unknown",
            return_url=return_url or None,
            passthrough=checkout_passthrough,
        )

        logger.info(f"Opening {self._provider} checkout for {sku} in {options.currency}")
        if self._provider == "paddle":
            return await build_paddle_checkout_url(options, self._paddle)
        return await build_paypro_checkout_url(options, self._paypro_config, self._exchange_rates)

    @staticmethod
    def _parse_passthrough(passthrough: Optional[str]) -> dict:
        if not passthrough:
            return {}
        try:
            parsed = json.loads(passthrough)
        except json.JSONDecodeError:
            raise InvalidCheckoutRequestError("Passthrough must be a JSON object")
        if not isinstance(parsed, dict):
            raise InvalidCheckoutRequestError("Passthrough must be a JSON object")
        return parsed
