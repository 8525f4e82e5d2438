"""
IP geolocation via ip-api.com.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from shared.retries import RetryPolicy, with_retries

from .exceptions import GeolocationError
from .models import IpLocation

logger = logging.getLogger(__name__)

IP_API_FIELDS = (
    "status",
    "message",
    "countryCode",
    "countryCode3",
    "continentCode",
    "currency",
    "proxy",
    "hosting",
)


class IpGeolocator:
    """Looks up the country, continent and currency of a client IP."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 5.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._policy = retry_policy or RetryPolicy(attempts=3, base_delay=0.2, max_delay=1.0)

    async def _fetch(self, ip: str) -> IpLocation:
        params = {"fields": ",".join(IP_API_FIELDS)}
        if self._api_key:
            params["key"] = self._api_key

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/json/{ip}", params=params)
        except httpx.RequestError as e:
            raise GeolocationError(ip, str(e)) from e

        if response.status_code >= 400:
            raise GeolocationError(ip, f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise GeolocationError(ip, f"unreadable response: {e}") from e

        if not isinstance(data, dict):
            raise GeolocationError(ip, "unexpected response shape")
        if data.get("status") != "success":
            raise GeolocationError(ip, data.get("message", "unknown failure"))

        try:
            return IpLocation.model_validate(data)
        except ValidationError as e:
            raise GeolocationError(ip, f"incomplete response: {e.error_count()} invalid field(s)") from e

    async def locate(self, ip: str) -> IpLocation:
        """
        Locate an IP address.

        Raises:
            GeolocationError: If every attempt fails
        """
        return await with_retries(f"IP lookup for {ip}", lambda: self._fetch(ip), self._policy)
