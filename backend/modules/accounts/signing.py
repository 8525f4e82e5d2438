"""
Signed account data.

Apps verify app and billing data with the matching public key, so they can
use a paid account offline until the token expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

# How long an app can run a paid account without checking in
APP_DATA_LIFETIME = timedelta(days=60)
BILLING_DATA_LIFETIME = timedelta(days=7)


class DataSigner:
    """Signs account data as RS256 JWTs."""

    def __init__(self, private_key_pem: str, issuer: str):
        self._private_key = private_key_pem
        self._issuer = issuer

    def audience(self, kind: str) -> str:
        return f"{self._issuer.rstrip('/')}/{kind}"

    def sign(
        self,
        data: dict[str, Any],
        kind: str,
        lifetime: timedelta,
        now: Optional[datetime] = None,
    ) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {
            **data,
            "iat": now,
            "exp": now + lifetime,
            "aud": self.audience(kind),
            "iss": self._issuer,
        }
        return jwt.encode(claims, self._private_key, algorithm="RS256")

    def sign_app_data(self, data: dict[str, Any]) -> str:
        return self.sign(data, "app_data", APP_DATA_LIFETIME)

    def sign_billing_data(self, data: dict[str, Any]) -> str:
        return self.sign(data, "billing_data", BILLING_DATA_LIFETIME)
