"""Tests for the webhook endpoints."""

import base64

import pytest
from unittest.mock import AsyncMock, MagicMock
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from fastapi.testclient import TestClient

from api.app import create_app
from api.dependencies import get_webhook_service
from modules.webhooks.service import WebhookService
from modules.webhooks.signatures import paddle_signed_payload, paypro_signature
from shared.exceptions import UpstreamProviderError


@pytest.fixture
def service(users, public_key_pem):
    return WebhookService(users, paddle_public_key=public_key_pem, paypro_validation_key="ipn-key")


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[get_webhook_service] = lambda: service
    return TestClient(app)


def _signed_paddle(rsa_key, **fields) -> dict:
    signature = rsa_key.sign(paddle_signed_payload(fields), padding.PKCS1v15(), hashes.SHA1())
    return {**fields, "p_signature": base64.b64encode(signature).decode("ascii")}


class TestPaddleWebhook:
    """Tests for POST /api/paddle-webhook"""

    def test_accepts_signed_webhook(self, client, users, rsa_key):
        """A valid form-encoded webhook should be applied and get an empty 200."""
        fields = _signed_paddle(
            rsa_key,
            alert_name="subscription_created",
            email="buyer@example.com",
            subscription_id="12345",
            subscription_plan_id="550382",
            status="active",
            quantity="1",
            next_bill_date="2026-01-01",
        )

        response = client.post("/api/paddle-webhook", data=fields)

        assert response.status_code == 200
        assert response.text == ""
        [user] = users.users.values()
        assert user.app_metadata["subscription_sku"] == "pro-annual"

    def test_rejects_bad_signature(self, client, users):
        """Unsigned webhooks get a plain text 403."""
        response = client.post(
            "/api/paddle-webhook",
            data={"alert_name": "subscription_created", "email": "buyer@example.com", "p_signature": "AAAA"},
        )

        assert response.status_code == 403
        assert response.headers["content-type"].startswith("text/plain")
        assert "invalid" in response.text
        assert users.updates == []

    def test_unexpected_failures_are_500s(self, users):
        """Anything other than a status error is left to the app's error handling."""
        service = MagicMock()
        service.handle_paddle_webhook = AsyncMock(side_effect=UpstreamProviderError("auth0 down", "auth0", 503))
        app = create_app()
        app.dependency_overrides[get_webhook_service] = lambda: service

        response = TestClient(app).post("/api/paddle-webhook", data={"alert_name": "subscription_created"})

        assert response.status_code == 500


class TestPayProWebhook:
    """Tests for POST /api/paypro-webhook"""

    def test_accepts_signed_ipn(self, client, users):
        fields = {
            "IPN_TYPE_NAME": "OrderCharged",
            "ORDER_ID": "1001",
            "ORDER_STATUS": "Processed",
            "ORDER_TOTAL_AMOUNT": "60.00",
            "CUSTOMER_EMAIL": "buyer@example.com",
            "TEST_MODE": "0",
            "ORDER_ITEM_SKU": "pro-annual",
            "PRODUCT_QUANTITY": "1",
            "SUBSCRIPTION_ID": "778899",
            "SUBSCRIPTION_NEXT_CHARGE_DATE": "1/1/2027 9:00 AM",
        }
        fields["SIGNATURE"] = paypro_signature(fields, "ipn-key")

        response = client.post("/api/paypro-webhook", data=fields)

        assert response.status_code == 200
        [user] = users.users.values()
        assert user.app_metadata["payment_provider"] == "paypro"

    def test_rejects_bad_signature(self, client):
        response = client.post(
            "/api/paypro-webhook",
            data={"IPN_TYPE_NAME": "OrderCharged", "CUSTOMER_EMAIL": "buyer@example.com", "SIGNATURE": "nope"},
        )

        assert response.status_code == 403
        assert "did not match" in response.text
