"""Tests for the Paddle vendor API client."""

import httpx
import pytest

from modules.billing.paddle_client import PaddleClient
from shared.exceptions import UpstreamProviderError
from shared.retries import RetryPolicy, is_client_error

MODULE = "modules.billing.paddle_client"


@pytest.fixture
def client():
    return PaddleClient(
        base_url="https://vendors.example.com/",
        vendor_id="1234",
        auth_code="secret",
        retry_policy=RetryPolicy(attempts=2, base_delay=0, should_abort=is_client_error),
    )


def _ok(response=None) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "response": response})


class TestPaddleClient:
    @pytest.mark.asyncio
    async def test_cancel_subscription(self, client, fake_http):
        """Should post the vendor credentials and subscription id."""
        requests = fake_http(MODULE, [_ok()])

        await client.cancel_subscription(12345)

        method, url, kwargs = requests[0]
        assert method == "POST"
        assert url == "https://vendors.example.com/api/2.0/subscription/users_cancel"
        assert kwargs["data"] == {"vendor_id": "1234", "vendor_auth_code": "secret", "subscription_id": "12345"}

    @pytest.mark.asyncio
    async def test_update_quantity(self, client, fake_http):
        """Quantity updates keep modifiers and pass the billing flags."""
        requests = fake_http(MODULE, [_ok()])

        await client.update_subscription_quantity("12345", 8, prorate=True, bill_immediately=True)

        form = requests[0][2]["data"]
        assert form["quantity"] == "8"
        assert form["prorate"] == "true"
        assert form["bill_immediately"] == "true"
        assert form["keep_modifiers"] == "true"

    @pytest.mark.asyncio
    async def test_unsuccessful_response(self, client, fake_http):
        """A success: false body is an upstream error even with a 200."""
        fake_http(
            MODULE,
            [httpx.Response(200, json={"success": False, "error": {"message": "Invalid subscription"}})] * 2,
        )

        with pytest.raises(UpstreamProviderError, match="Invalid subscription"):
            await client.cancel_subscription(1)

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, client, fake_http):
        requests = fake_http(MODULE, [httpx.Response(403, text="Forbidden")])

        with pytest.raises(UpstreamProviderError) as exc_info:
            await client.cancel_subscription(1)
        assert exc_info.value.status == 403
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_user_transactions(self, client, fake_http):
        """Transactions should keep only the billing page fields."""
        fake_http(
            MODULE,
            [
                _ok(
                    [
                        {
                            "order_id": 987,
                            "checkout_id": "abc",
                            "amount": "22.00",
                            "currency": "USD",
                            "status": "completed",
                            "created_at": "2024-01-01 10:00:00",
                            "product_id": 550789,
                            "receipt_url": "https://receipts.example.com/987",
                            "is_subscription": True,
                        }
                    ]
                )
            ],
        )

        [transaction] = await client.get_user_transactions(42)

        assert transaction.order_id == "987"
        assert transaction.product_id == 550789
        assert transaction.amount == "22.00"
        assert transaction.sku is None

    @pytest.mark.asyncio
    async def test_user_id_for_subscription(self, client, fake_http):
        fake_http(MODULE, [_ok([{"user_id": 42, "subscription_id": 12345}])])
        assert await client.get_user_id_for_subscription(12345) == "42"

    @pytest.mark.asyncio
    async def test_user_id_for_ambiguous_subscription(self, client, fake_http):
        """More than one user for a subscription can't be resolved."""
        fake_http(MODULE, [_ok([{"user_id": 1}, {"user_id": 2}])])

        with pytest.raises(UpstreamProviderError, match="Multiple users"):
            await client.get_user_id_for_subscription(12345)

    @pytest.mark.asyncio
    async def test_generate_pay_link(self, client, fake_http):
        """Pay links override the price in the buyer's currency."""
        requests = fake_http(MODULE, [_ok({"url": "https://pay.example.com/checkout/1"})])

        url = await client.generate_pay_link(
            product_id=550789,
            currency="GBP",
            price=11,
            email="buyer@example.com",
            quantity=3,
        )

        assert url == "https://pay.example.com/checkout/1"
        form = requests[0][2]["data"]
        assert form["prices[0]"] == "GBP:11"
        assert form["quantity"] == "3"
        assert form["discountable"] == "0"
        assert "coupon_code" not in form
