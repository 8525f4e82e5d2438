"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations from settings.

Tests swap implementations through app.dependency_overrides, or by
resetting the container.
"""

import logging
from typing import TYPE_CHECKING

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.accounts.interfaces import IAccountsService
    from modules.billing.interfaces import ICheckoutService
    from modules.billing.paddle_client import PaddleClient
    from modules.billing.paypro_client import PayProClient
    from modules.pricing.exchange_rates import ExchangeRateService
    from modules.pricing.geolocation import IpGeolocator
    from modules.pricing.interfaces import IPricingService
    from modules.users.interfaces import IUserService
    from modules.webhooks.interfaces import IWebhookService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container, so
    in-process caches (tokens, pricing, exchange rates) live as long
    as the container does. Use reset() to clear them for testing.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings
        self._user_service: "IUserService | None" = None
        self._paddle_client: "PaddleClient | None" = None
        self._paypro_client: "PayProClient | None" = None
        self._geolocation: "IpGeolocator | None" = None
        self._exchange_rates: "ExchangeRateService | None" = None
        self._pricing_service: "IPricingService | None" = None
        self._checkout_service: "ICheckoutService | None" = None
        self._webhook_service: "IWebhookService | None" = None
        self._accounts_service: "IAccountsService | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def _retry_policy(self, **overrides):
        from shared.retries import RetryPolicy, is_client_error
        options = {
            "attempts": self.settings.retry_attempts,
            "base_delay": self.settings.retry_base_delay,
            "should_abort": is_client_error,
        }
        options.update(overrides)
        return RetryPolicy(**options)

    @property
    def users(self) -> "IUserService":
        """Get the user service instance."""
        if self._user_service is None:
            from modules.users.identity import Auth0Client
            from modules.users.service import UserService

            settings = self.settings
            identity = Auth0Client(
                domain=settings.auth0_domain,
                client_id=settings.auth0_mgmt_client_id,
                client_secret=settings.auth0_mgmt_client_secret,
                retry_policy=self._retry_policy(),
            )

            mirror = None
            from shared.database import get_supabase_client, is_mirror_configured
            if is_mirror_configured(settings):
                from modules.users.mirror import UserMirrorRepository
                mirror = UserMirrorRepository(get_supabase_client())
            else:
                logger.warning("Supabase is not configured, user metadata will not be mirrored")

            self._user_service = UserService(identity, mirror)
        return self._user_service

    @property
    def paddle_client(self) -> "PaddleClient":
        """Get the Paddle API client."""
        if self._paddle_client is None:
            from modules.billing.paddle_client import PaddleClient
            self._paddle_client = PaddleClient(
                base_url=self.settings.paddle_base_url,
                vendor_id=self.settings.paddle_vendor_id,
                auth_code=self.settings.paddle_auth_code,
                retry_policy=self._retry_policy(),
            )
        return self._paddle_client

    @property
    def paypro_client(self) -> "PayProClient":
        """Get the PayPro API client."""
        if self._paypro_client is None:
            from modules.billing.paypro_client import PayProClient
            self._paypro_client = PayProClient(
                base_url=self.settings.paypro_base_url,
                account_id=self.settings.paypro_account_id,
                api_key=self.settings.paypro_api_key,
                retry_policy=self._retry_policy(),
            )
        return self._paypro_client

    @property
    def geolocation(self) -> "IpGeolocator":
        """Get the IP geolocation client."""
        if self._geolocation is None:
            from modules.pricing.geolocation import IpGeolocator
            self._geolocation = IpGeolocator(
                base_url=self.settings.ip_api_base_url,
                api_key=self.settings.ip_api_key,
            )
        return self._geolocation

    @property
    def exchange_rates(self) -> "ExchangeRateService":
        """Get the exchange rate service."""
        if self._exchange_rates is None:
            from modules.pricing.exchange_rates import ExchangeRateService
            self._exchange_rates = ExchangeRateService(
                base_url=self.settings.exchange_rate_base_url,
                max_age_seconds=self.settings.exchange_rate_cache_seconds,
            )
        return self._exchange_rates

    @property
    def pricing(self) -> "IPricingService":
        """Get the pricing service instance."""
        if self._pricing_service is None:
            from modules.pricing.service import PricingService
            self._pricing_service = PricingService(
                geolocator=self.geolocation,
                cache_ttl_seconds=self.settings.pricing_cache_ttl_seconds,
            )
        return self._pricing_service

    @property
    def checkout(self) -> "ICheckoutService":
        """Get the checkout service instance."""
        if self._checkout_service is None:
            from modules.billing.checkout import PayProCheckoutConfig
            from modules.billing.service import CheckoutService
            self._checkout_service = CheckoutService(
                pricing=self.pricing,
                exchange_rates=self.exchange_rates,
                paypro_config=PayProCheckoutConfig(
                    base_url=self.settings.paypro_base_url,
                    param_key=self.settings.paypro_param_key,
                    param_iv=self.settings.paypro_param_iv,
                ),
                paddle=self.paddle_client,
                provider=self.settings.checkout_provider,
            )
        return self._checkout_service

    @property
    def webhooks(self) -> "IWebhookService":
        """Get the webhook service instance."""
        if self._webhook_service is None:
            from modules.webhooks.service import WebhookService
            self._webhook_service = WebhookService(
                users=self.users,
                paddle_public_key=self.settings.paddle_public_key,
                paypro_validation_key=self.settings.paypro_ipn_validation_key,
            )
        return self._webhook_service

    @property
    def accounts(self) -> "IAccountsService":
        """Get the accounts service instance."""
        if self._accounts_service is None:
            from modules.accounts.service import AccountsService
            from modules.accounts.signing import DataSigner
            self._accounts_service = AccountsService(
                users=self.users,
                paddle=self.paddle_client,
                paypro=self.paypro_client,
                signer=DataSigner(self.settings.signing_private_key, self.settings.app_data_issuer),
                billing_email=self.settings.billing_email,
                poll_interval=self.settings.team_update_poll_interval,
                poll_timeout=self.settings.team_update_timeout,
            )
        return self._accounts_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._user_service = None
        self._paddle_client = None
        self._paypro_client = None
        self._geolocation = None
        self._exchange_rates = None
        self._pricing_service = None
        self._checkout_service = None
        self._webhook_service = None
        self._accounts_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_user_service() -> "IUserService":
    """FastAPI dependency for the user service."""
    return get_container().users


def get_pricing_service() -> "IPricingService":
    """FastAPI dependency for the pricing service."""
    return get_container().pricing


def get_checkout_service() -> "ICheckoutService":
    """FastAPI dependency for the checkout service."""
    return get_container().checkout


def get_webhook_service() -> "IWebhookService":
    """FastAPI dependency for the webhook service."""
    return get_container().webhooks


def get_accounts_service() -> "IAccountsService":
    """FastAPI dependency for the accounts service."""
    return get_container().accounts
