"""
PayPro Global API client.

Requests are JSON POSTs carrying the vendor account id and API secret in the
body. Responses are wrapped as {"isSuccess": bool, "response": ..., "errors": ...}.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from dateutil import parser as date_parser

from shared.exceptions import UpstreamProviderError
from shared.retries import RetryPolicy, is_client_error, with_retries

from .models import TransactionData, TransactionStatus

logger = logging.getLogger(__name__)

SERVICE_NAME = "paypro"

ORDER_STATUSES: dict[str, TransactionStatus] = {
    "Waiting": TransactionStatus.WAITING,
    "Canceled": TransactionStatus.CANCELED,
    "Refunded": TransactionStatus.REFUNDED,
    "Chargeback": TransactionStatus.DISPUTED,
    "Processed": TransactionStatus.COMPLETED,
}


def parse_order_details_date(value: str) -> datetime:
    """Order details dates are ISO 8601 without a zone, always UTC."""
    return date_parser.isoparse(value).replace(tzinfo=timezone.utc)


class PayProClient:
    """Async client for the PayPro Global vendor API."""

    def __init__(
        self,
        base_url: str,
        account_id: str,
        api_key: str,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._account_id = account_id
        self._api_key = api_key
        self._timeout = timeout
        self._policy = retry_policy or RetryPolicy(attempts=3, should_abort=is_client_error)

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        body = {
            "vendorAccountId": self._account_id,
            "apiSecretKey": self._api_key,
            **payload,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/api/{path}", json=body)
        except httpx.RequestError as e:
            raise UpstreamProviderError(f"PayPro {path} request failed: {e}", SERVICE_NAME) from e

        if response.status_code >= 400:
            logger.warning(f"PayPro {path} returned {response.status_code}: {response.text}")
            raise UpstreamProviderError(
                f"Unexpected {response.status_code} from PayPro {path}",
                SERVICE_NAME,
                status=response.status_code,
            )

        data = response.json()
        if not data.get("isSuccess"):
            logger.warning(f"PayPro errors for {path}: {data.get('errors')}")
            raise UpstreamProviderError(
                f"PayPro {path} request failed",
                SERVICE_NAME,
                status=response.status_code,
            )

        return data.get("response")

    async def _call(self, path: str, payload: dict[str, Any]) -> Any:
        return await with_retries(f"PayPro {path}", lambda: self._post(path, payload), self._policy)

    async def cancel_subscription(self, subscription_id: int | str) -> None:
        await self._call(
            "Subscriptions/Terminate",
            {
                "reasonText": "API cancellation",
                "sendCustomerNotification": True,
                "subscriptionId": subscription_id,
            },
        )

    async def get_orders(self, email: str) -> list[TransactionData]:
        """Every order placed with this email, with full details."""
        listing = await self._call("Orders/GetList", {"search": {"customerEmail": email}})
        orders = (listing or {}).get("orders", [])

        details = await asyncio.gather(
            *(self._call("Orders/GetOrderDetails", {"orderId": order["id"]}) for order in orders)
        )
        return [self._to_transaction(order) for order in details]

    @staticmethod
    def _to_transaction(order: dict[str, Any]) -> TransactionData:
        items = order.get("orderItems") or []
        if len(items) != 1:
            raise UpstreamProviderError(
                f"Unexpectedly found {len(items)} items in PayPro order {order.get('orderId')}",
                SERVICE_NAME,
            )

        status = ORDER_STATUSES.get(order.get("orderStatusName", ""))
        if status is None:
            raise UpstreamProviderError(
                f"Unrecognized PayPro order status: {order.get('orderStatusName')}",
                SERVICE_NAME,
            )

        return TransactionData(
            order_id=str(order["orderId"]),
            amount=f"{float(order['billingTotalPrice']):.2f}",
            currency=order["billingCurrencyCode"],
            receipt_url=order.get("invoiceLink"),
            sku=items[0].get("sku"),
            status=status.value,
            created_at=parse_order_details_date(order["createdAt"]).isoformat(),
        )
