"""
Supabase access for the users mirror.

The mirror is written by the backend on behalf of every user, so only the
service role client exists. End users never reach Supabase directly.
"""

from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from .config import Settings, get_settings


class MirrorNotConfigured(RuntimeError):
    """Raised when a Supabase client is requested without credentials."""


def is_mirror_configured(settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.supabase_url and settings.supabase_service_role_key)


@lru_cache
def get_supabase_client() -> Client:
    """
    Get the process-wide service role client.

    Raises:
        MirrorNotConfigured: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is unset
    """
    settings = get_settings()
    if not is_mirror_configured(settings):
        raise MirrorNotConfigured("Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to mirror users to Supabase")
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def reset_client_cache() -> None:
    """Drop the cached client, e.g. after settings change in tests."""
    get_supabase_client.cache_clear()
