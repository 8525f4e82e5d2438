"""
Paddle classic (v2.0) vendor API client.

Every request is a form POST authenticated with vendor_id/vendor_auth_code,
and every response is wrapped as {"success": bool, "response": ...}.
"""

import logging
from typing import Any, Optional

import httpx

from shared.exceptions import UpstreamProviderError
from shared.retries import RetryPolicy, is_client_error, with_retries

from .models import TransactionData

logger = logging.getLogger(__name__)

SERVICE_NAME = "paddle"

TRANSACTION_FIELDS = (
    "order_id",
    "receipt_url",
    "product_id",
    "created_at",
    "status",
    "currency",
    "amount",
)


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class PaddleClient:
    """Async client for the Paddle classic vendor API."""

    def __init__(
        self,
        base_url: str,
        vendor_id: str,
        auth_code: str,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._vendor_id = vendor_id
        self._auth_code = auth_code
        self._timeout = timeout
        self._policy = retry_policy or RetryPolicy(attempts=3, should_abort=is_client_error)

    async def _post(self, path: str, data: Optional[dict[str, Any]] = None) -> Any:
        form = {
            "vendor_id": self._vendor_id,
            "vendor_auth_code": self._auth_code,
            **(data or {}),
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/api/2.0/{path}", data=form)
        except httpx.RequestError as e:
            raise UpstreamProviderError(f"Paddle {path} request failed: {e}", SERVICE_NAME) from e

        if response.status_code >= 400:
            logger.warning(f"Paddle {path} returned {response.status_code}: {response.text}")
            raise UpstreamProviderError(
                f"{response.status_code} error response from Paddle API",
                SERVICE_NAME,
                status=response.status_code,
            )

        body = response.json()
        if not body.get("success"):
            logger.warning(f"Unsuccessful Paddle response for {path}: {body}")
            error = body.get("error") or {}
            raise UpstreamProviderError(
                f"Unsuccessful response from Paddle API: {error.get('message', 'unknown error')}",
                SERVICE_NAME,
                status=response.status_code,
            )

        return body.get("response")

    async def _call(self, path: str, data: Optional[dict[str, Any]] = None) -> Any:
        return await with_retries(f"Paddle {path}", lambda: self._post(path, data), self._policy)

    async def cancel_subscription(self, subscription_id: int | str) -> None:
        await self._call("subscription/users_cancel", {"subscription_id": str(subscription_id)})

    async def update_subscription_quantity(
        self,
        subscription_id: int | str,
        quantity: int,
        prorate: bool,
        bill_immediately: bool,
    ) -> None:
        """
        Change the seat count of a subscription.

        Paddle confirms the change later via a subscription_updated webhook.
        """
        await self._call(
            "subscription/users/update",
            {
                "subscription_id": str(subscription_id),
                "quantity": str(quantity),
                "prorate": _bool_param(prorate),
                "bill_immediately": _bool_param(bill_immediately),
                "keep_modifiers": "true",
            },
        )

    async def get_user_id_for_subscription(self, subscription_id: int | str) -> str:
        """Look up the Paddle user of a subscription, for records that predate paddle_user_id."""
        users = await self._call("subscription/users", {"subscription_id": str(subscription_id)})

        if not users:
            raise UpstreamProviderError(
                f"Unrecognized subscription id {subscription_id}", SERVICE_NAME
            )
        if len(users) > 1:
            raise UpstreamProviderError(
                f"Multiple users for subscription id {subscription_id}", SERVICE_NAME
            )
        return str(users[0]["user_id"])

    async def get_user_transactions(self, paddle_user_id: int | str) -> list[TransactionData]:
        transactions = await self._call(f"user/{paddle_user_id}/transactions")
        return [
            TransactionData.model_validate(
                {
                    key: str(value) if key in ("order_id", "amount") else value
                    for key, value in transaction.items()
                    if key in TRANSACTION_FIELDS
                }
            )
            for transaction in transactions or []
        ]

    async def generate_pay_link(
        self,
        product_id: int,
        currency: str,
        price: float,
        email: Optional[str] = None,
        quantity: Optional[int] = None,
        passthrough: Optional[str] = None,
        return_url: Optional[str] = None,
        discount_code: Optional[str] = None,
    ) -> str:
        """Create a one-off checkout link with a price override for the buyer's currency."""
        data: dict[str, Any] = {
            "product_id": str(product_id),
            "prices[0]": f"{currency}:{price}",
            # Region prices are already discounted, only explicit coupons apply on top
            "discountable": "1" if discount_code else "0",
            "quantity_variable": "0",
        }
        if email:
            data["customer_email"] = email
        if quantity:
            data["quantity"] = str(quantity)
        if passthrough:
            data["passthrough"] = passthrough
        if return_url:
            data["return_url"] = return_url
        if discount_code:
            data["coupon_code"] = discount_code

        response = await self._call("product/generate_pay_link", data)
        return response["url"]
