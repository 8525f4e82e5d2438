"""
Auth0 Management API client.

The identity provider is the primary store of user records. Every call is
rate limited on Auth0's side, so all of them go through with_retries().
"""

import logging
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from shared.exceptions import AuthenticationError, UpstreamProviderError
from shared.retries import RetryPolicy, is_client_error, with_retries

from .exceptions import UserNotFoundError
from .models import User

logger = logging.getLogger(__name__)

SERVICE_NAME = "auth0"

# Auth0 allows at most 100 users per page
MAX_PAGE_SIZE = 100


class Auth0Client:
    """
    Thin async client for the Auth0 Management API v2.

    Authenticates with client credentials and caches the management token
    until shortly before it expires.
    """

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 15.0,
    ):
        self._base_url = f"https://{domain}"
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._policy = retry_policy or RetryPolicy(should_abort=is_client_error)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def _send(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    headers=headers,
                    params=params,
                    json=json,
                )
        except httpx.RequestError as e:
            raise UpstreamProviderError(f"{method} {path} failed: {e}", SERVICE_NAME) from e

        if response.status_code >= 400:
            raise UpstreamProviderError(
                f"{method} {path} failed with status {response.status_code}",
                SERVICE_NAME,
                status=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamProviderError(f"{method} {path} returned unreadable JSON", SERVICE_NAME) from e

    async def _management_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        data = await self._send(
            "POST",
            "/oauth/token",
            json={
                "grant_type": "client_credentials",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "audience": f"{self._base_url}/api/v2/",
            },
        )
        if not isinstance(data, dict) or not isinstance(data.get("access_token"), str):
            raise UpstreamProviderError("Unexpected management token response", SERVICE_NAME)
        self._token = data["access_token"]
        # Refresh a minute early
        self._token_expires_at = time.monotonic() + int(data.get("expires_in", 86400)) - 60
        return self._token

    async def _management_request(self, method: str, path: str, **kwargs: Any) -> Any:
        async def attempt():
            token = await self._management_token()
            return await self._send(method, path, token=token, **kwargs)

        return await with_retries(f"Auth0 {method} {path}", attempt, self._policy)

    async def get_user(self, user_id: str) -> User:
        """Get the full live record for a user."""
        try:
            data = await self._management_request("GET", f"/api/v2/users/{quote(user_id, safe='')}")
        except UpstreamProviderError as e:
            if e.status == 404:
                raise UserNotFoundError(user_id) from e
            raise
        return _to_user(data)

    async def get_users_by_email(self, email: str) -> list[User]:
        data = await self._management_request(
            "GET", "/api/v2/users-by-email", params={"email": email}
        )
        return _to_users(data)

    async def create_user(self, email: str, app_metadata: dict[str, Any]) -> User:
        data = await self._management_request(
            "POST",
            "/api/v2/users",
            json={
                "email": email,
                "connection": "email",
                # Stops Auth0 sending the new user a verification email
                "email_verified": True,
                "app_metadata": app_metadata,
            },
        )
        return _to_user(data)

    async def update_app_metadata(self, user_id: str, patch: dict[str, Any]) -> None:
        """Merge a patch into app_metadata. Auth0 deletes fields set to null."""
        await self._management_request(
            "PATCH",
            f"/api/v2/users/{quote(user_id, safe='')}",
            json={"app_metadata": patch},
        )

    async def search_users(self, query: str) -> list[User]:
        data = await self._management_request(
            "GET",
            "/api/v2/users",
            params={"q": query, "per_page": MAX_PAGE_SIZE, "search_engine": "v3"},
        )
        return _to_users(data)

    async def get_user_id_for_token(self, access_token: str) -> str:
        """
        Look up which user a login access token belongs to.

        Raises:
            AuthenticationError: If Auth0 rejects the token
        """

        async def attempt():
            return await self._send("GET", "/userinfo", token=access_token)

        try:
            profile = await with_retries("Auth0 userinfo", attempt, self._policy)
        except UpstreamProviderError as e:
            if e.status in (401, 403):
                raise AuthenticationError("Invalid or expired token") from e
            raise

        user_id = (profile or {}).get("sub")
        if not isinstance(user_id, str):
            raise UpstreamProviderError(f"Unexpected userinfo result: {profile}", SERVICE_NAME)
        return user_id


def _to_user(data: Any) -> User:
    try:
        return User.model_validate(data)
    except ValidationError as e:
        raise UpstreamProviderError(
            f"Unexpected user record from Auth0: {e.error_count()} invalid field(s)", SERVICE_NAME
        ) from e


def _to_users(data: Any) -> list[User]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise UpstreamProviderError(f"Expected a list of users from Auth0, got {type(data).__name__}", SERVICE_NAME)
    return [_to_user(user) for user in data]
