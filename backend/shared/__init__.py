"""
Shared infrastructure for the accounts backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase service client for the users mirror
- exceptions: Base exception classes
- reporting: Operator error channel
- retries: Retry-with-backoff wrapper for provider calls

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import MirrorNotConfigured, get_supabase_client, is_mirror_configured, reset_client_cache
from .exceptions import (
    AccountsError,
    StatusError,
    AuthenticationError,
    ExternalServiceError,
    UpstreamProviderError,
    DataInconsistencyError,
)
from .models import AuthenticatedUser
from .reporting import report_error
from .retries import RetryPolicy, with_retries

__all__ = [
    "Settings",
    "get_settings",
    "MirrorNotConfigured",
    "get_supabase_client",
    "is_mirror_configured",
    "reset_client_cache",
    "AccountsError",
    "StatusError",
    "AuthenticationError",
    "ExternalServiceError",
    "UpstreamProviderError",
    "DataInconsistencyError",
    "AuthenticatedUser",
    "report_error",
    "RetryPolicy",
    "with_retries",
]
