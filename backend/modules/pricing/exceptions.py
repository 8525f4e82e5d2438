"""
Pricing module exceptions.

These exceptions are raised by the pricing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import AccountsError, UpstreamProviderError


class PricingError(AccountsError):
    """Base exception for pricing errors."""

    pass


class GeolocationError(UpstreamProviderError):
    """Raised when an IP can't be located."""

    def __init__(self, ip: str, reason: str):
        super().__init__(f"Failure from IP API for {ip}: {reason}", "ip-api")
        self.details["ip"] = ip


class ExchangeRateError(UpstreamProviderError):
    """Raised when exchange rates can't be fetched."""

    def __init__(self, base: str, reason: str):
        super().__init__(f"Unsuccessful result from exchange rate API for {base}: {reason}", "exchange-rates")
        self.details["base"] = base
