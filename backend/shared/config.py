"""
Centralized configuration for the accounts backend.

All settings are loaded from environment variables with sensible defaults.
Provider-specific settings are namespaced (e.g., PADDLE_*, PAYPRO_*, AUTH0_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Accounts API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:8080"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Supabase (relational mirror of user metadata)
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Auth0 (primary user store)
    auth0_domain: str = ""
    auth0_mgmt_client_id: str = ""
    auth0_mgmt_client_secret: str = ""

    # Signed account data
    signing_private_key: str = ""
    app_data_issuer: str = "https://accounts.example.com"
    billing_email: str = "billing@example.com"

    # Paddle (classic API)
    paddle_base_url: str = "https://vendors.paddle.com"
    paddle_vendor_id: str = ""
    paddle_auth_code: str = ""
    paddle_public_key: str = ""

    # PayPro Global
    paypro_base_url: str = "https://store.payproglobal.com"
    paypro_account_id: str = ""
    paypro_api_key: str = ""
    paypro_param_key: str = ""
    paypro_param_iv: str = ""
    paypro_ipn_validation_key: str = ""

    # Which provider handles new checkouts: "paypro" or "paddle"
    checkout_provider: str = "paypro"

    # Proxies whose X-Forwarded-For hops are believed: addresses or CIDR ranges.
    # Defaults cover loopback, link-local and private networks, plus the
    # shared address space used by container platforms.
    trusted_proxies: list[str] = [
        "127.0.0.0/8",
        "::1/128",
        "169.254.0.0/16",
        "fe80::/10",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "fc00::/7",
        "100.64.0.0/10",
    ]

    # Geolocation & exchange rates
    ip_api_base_url: str = "https://pro.ip-api.com"
    ip_api_key: str = ""
    exchange_rate_base_url: str = "https://api.exchangerate.host"
    exchange_rate_cache_seconds: int = 60 * 60

    # Per-IP pricing cache, keeps prices stable between pricing page and checkout
    pricing_cache_ttl_seconds: int = 6 * 60 * 60

    # Team size update confirmation polling
    team_update_poll_interval: float = 0.5
    team_update_timeout: float = 30.0

    # Retries for provider calls
    retry_attempts: int = 3
    retry_base_delay: float = 1.0


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
