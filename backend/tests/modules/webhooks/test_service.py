"""Tests for the webhook service."""

import base64

import pytest
from unittest.mock import AsyncMock, patch
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from modules.billing.exceptions import UnknownSkuError
from modules.webhooks.exceptions import MalformedWebhookError, SignatureInvalid
from modules.webhooks.service import WebhookService
from modules.webhooks.signatures import paddle_signed_payload, paypro_signature
from shared.exceptions import UpstreamProviderError

PAYPRO_KEY = "ipn-validation-key"
NOW = 1736500000000  # 2025-01-10


@pytest.fixture
def service(users, public_key_pem):
    return WebhookService(users, paddle_public_key=public_key_pem, paypro_validation_key=PAYPRO_KEY)


@pytest.fixture(autouse=True)
def fixed_now():
    with patch("modules.webhooks.service.now_ms", return_value=NOW), patch(
        "modules.webhooks.state_machine.now_ms", return_value=NOW
    ):
        yield


@pytest.fixture
def report():
    with patch("modules.webhooks.service.report_error") as report:
        yield report


@pytest.fixture
def paddle_webhook(rsa_key):
    def build(alert_name: str, **fields) -> dict:
        values = {
            "alert_name": alert_name,
            "email": "buyer@example.com",
            "user_id": "42",
            "subscription_id": "12345",
            "subscription_plan_id": "550380",
            "status": "active",
            "quantity": "1",
            "next_bill_date": "2025-02-01",
        }
        values.update(fields)
        signature = rsa_key.sign(paddle_signed_payload(values), padding.PKCS1v15(), hashes.SHA1())
        return {**values, "p_signature": base64.b64encode(signature).decode("ascii")}

    return build


def paypro_webhook(ipn_type: str, **fields) -> dict:
    values = {
        "IPN_TYPE_NAME": ipn_type,
        "ORDER_ID": "1001",
        "ORDER_STATUS": "Processed",
        "ORDER_TOTAL_AMOUNT": "60.00",
        "CUSTOMER_EMAIL": "buyer@example.com",
        "TEST_MODE": "0",
        "ORDER_ITEM_SKU": "pro-annual",
        "PRODUCT_QUANTITY": "1",
        "SUBSCRIPTION_ID": "778899",
        "SUBSCRIPTION_NEXT_CHARGE_DATE": "2/1/2026 9:00 AM",
        "ORDER_CUSTOM_FIELDS": "x-source=app,x-passthrough={}",
    }
    values.update(fields)
    values["SIGNATURE"] = paypro_signature(values, PAYPRO_KEY)
    return values


class TestPaddleWebhooks:
    @pytest.mark.asyncio
    async def test_creates_pro_subscriber(self, service, users, paddle_webhook):
        """A first subscription event should create the user with their subscription."""
        await service.handle_paddle_webhook(paddle_webhook("subscription_created"))

        [user] = users.users.values()
        assert user.email == "buyer@example.com"
        assert user.app_metadata["subscription_status"] == "active"
        assert user.app_metadata["subscription_sku"] == "pro-monthly"
        assert user.app_metadata["payment_provider"] == "paddle"
        assert "team_member_ids" not in user.app_metadata

    @pytest.mark.asyncio
    async def test_email_is_lowercased(self, service, users, paddle_webhook):
        existing = users.add("buyer@example.com")

        await service.handle_paddle_webhook(paddle_webhook("subscription_created", email="Buyer@Example.COM"))

        assert len(users.users) == 1
        assert users.metadata(existing.user_id)["subscription_status"] == "active"

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, service, users, paddle_webhook):
        """Applying the same event twice should leave the same record."""
        fields = paddle_webhook("subscription_payment_succeeded", receipt_url="https://receipts.example.com/1")

        await service.handle_paddle_webhook(fields)
        [user_id] = users.users
        first = dict(users.metadata(user_id))
        await service.handle_paddle_webhook(fields)

        assert users.metadata(user_id) == first

    @pytest.mark.asyncio
    async def test_creates_team_owner(self, service, users, paddle_webhook):
        """Team subscriptions give the buyer an empty team."""
        await service.handle_paddle_webhook(
            paddle_webhook("subscription_created", subscription_plan_id="550788", quantity="5")
        )

        [user] = users.users.values()
        assert user.app_metadata["subscription_sku"] == "team-annual"
        assert user.app_metadata["subscription_quantity"] == 5
        assert user.app_metadata["team_member_ids"] == []
        assert user.app_metadata["locked_licenses"] == []

    @pytest.mark.asyncio
    async def test_team_renewal_keeps_members(self, service, users, paddle_webhook):
        owner = users.add(
            "buyer@example.com",
            {"subscription_sku": "team-annual", "team_member_ids": ["auth0|m1"], "locked_licenses": [NOW - 1000]},
        )

        await service.handle_paddle_webhook(
            paddle_webhook("subscription_payment_succeeded", subscription_plan_id="550788", quantity="5")
        )

        assert users.metadata(owner.user_id)["team_member_ids"] == ["auth0|m1"]
        assert users.metadata(owner.user_id)["locked_licenses"] == [NOW - 1000]

    @pytest.mark.asyncio
    async def test_invalid_signature(self, service, users, paddle_webhook):
        fields = paddle_webhook("subscription_created")
        fields["quantity"] = "50"

        with pytest.raises(SignatureInvalid):
            await service.handle_paddle_webhook(fields)
        assert users.users == {}

    @pytest.mark.asyncio
    async def test_unknown_sku(self, service, users, paddle_webhook):
        """Plans outside the catalogue are rejected so Paddle retries them."""
        with pytest.raises(UnknownSkuError) as exc_info:
            await service.handle_paddle_webhook(paddle_webhook("subscription_created", subscription_plan_id="1"))
        assert exc_info.value.status == 400
        assert users.updates == []

    @pytest.mark.asyncio
    async def test_ignored_event(self, service, users, paddle_webhook):
        await service.handle_paddle_webhook(paddle_webhook("payment_refunded"))
        assert users.updates == []

    @pytest.mark.asyncio
    async def test_missing_email(self, service, paddle_webhook):
        with pytest.raises(MalformedWebhookError):
            await service.handle_paddle_webhook(paddle_webhook("subscription_created", email=""))

    @pytest.mark.asyncio
    async def test_dispute_bans_user(self, service, users, paddle_webhook):
        user = users.add("buyer@example.com", {"subscription_status": "active"})

        await service.handle_paddle_webhook(paddle_webhook("payment_dispute_created"))

        assert users.metadata(user.user_id)["banned"] is True
        assert users.metadata(user.user_id)["subscription_status"] == "active"

    @pytest.mark.asyncio
    async def test_user_store_failure_is_reported(self, service, users, paddle_webhook, report):
        """Once validated, a failed write is reported and the webhook still succeeds."""
        users.update_user_metadata = AsyncMock(
            side_effect=UpstreamProviderError("PATCH /api/v2/users/x returned unreadable JSON", "auth0")
        )

        await service.handle_paddle_webhook(paddle_webhook("subscription_created"))

        report.assert_called_once()
        assert "unreadable JSON" in str(report.call_args.args[0])


class TestProSignupForTeamMembers:
    @pytest.mark.asyncio
    async def test_member_of_active_team_is_rejected(self, service, users, paddle_webhook, report):
        """Members of an active team can't also buy Pro; the failure is reported, not raised."""
        owner = users.add(
            "owner@example.com",
            {"subscription_status": "active", "subscription_expiry": NOW + 10_000, "team_member_ids": []},
        )
        member = users.add("buyer@example.com", {"subscription_owner_id": owner.user_id})
        users.metadata(owner.user_id)["team_member_ids"].append(member.user_id)

        await service.handle_paddle_webhook(paddle_webhook("subscription_created"))

        assert users.metadata(member.user_id) == {"subscription_owner_id": owner.user_id}
        assert users.metadata(owner.user_id)["team_member_ids"] == [member.user_id]
        assert report.called
        assert report.call_args.args[0].status == 409

    @pytest.mark.asyncio
    async def test_member_of_ended_team_is_unlinked(self, service, users, paddle_webhook):
        """Once the team has ended, buying Pro removes the old membership on both sides."""
        owner = users.add(
            "owner@example.com",
            {"subscription_status": "deleted", "subscription_expiry": NOW - 10_000, "team_member_ids": []},
        )
        member = users.add("buyer@example.com", {"subscription_owner_id": owner.user_id, "joined_team_at": 1})
        users.metadata(owner.user_id)["team_member_ids"].extend([member.user_id, "auth0|other"])

        await service.handle_paddle_webhook(paddle_webhook("subscription_created"))

        assert users.metadata(owner.user_id)["team_member_ids"] == ["auth0|other"]
        assert "subscription_owner_id" not in users.metadata(member.user_id)
        assert users.metadata(member.user_id)["subscription_status"] == "active"

    @pytest.mark.asyncio
    async def test_missing_owner_is_reported(self, service, users, paddle_webhook, report):
        member = users.add("buyer@example.com", {"subscription_owner_id": "auth0|gone"})

        await service.handle_paddle_webhook(paddle_webhook("subscription_created"))

        assert "subscription_owner_id" not in users.metadata(member.user_id)
        assert "missing team owner" in str(report.call_args.args[0])


class TestPayProWebhooks:
    @pytest.mark.asyncio
    async def test_order_charged(self, service, users):
        await service.handle_paypro_webhook(paypro_webhook("OrderCharged"))

        [user] = users.users.values()
        assert user.app_metadata["payment_provider"] == "paypro"
        assert user.app_metadata["subscription_id"] == "778899"
        assert user.app_metadata["subscription_plan_id"] == 550382
        assert user.app_metadata["subscription_status"] == "active"

    @pytest.mark.asyncio
    async def test_terminated(self, service, users):
        user = users.add(
            "buyer@example.com",
            {"subscription_status": "active", "subscription_sku": "pro-annual", "subscription_expiry": 5},
        )

        await service.handle_paypro_webhook(
            paypro_webhook("SubscriptionTerminated", SUBSCRIPTION_NEXT_CHARGE_DATE="")
        )

        assert users.metadata(user.user_id)["subscription_status"] == "deleted"
        assert users.metadata(user.user_id)["subscription_expiry"] == 5

    @pytest.mark.asyncio
    async def test_chargeback(self, service, users):
        """Chargebacks ban the customer and end their subscription immediately."""
        user = users.add("buyer@example.com", {"subscription_status": "active", "subscription_expiry": NOW * 2})

        await service.handle_paypro_webhook(paypro_webhook("OrderChargedBack"))

        metadata = users.metadata(user.user_id)
        assert metadata["banned"] is True
        assert metadata["subscription_status"] == "deleted"
        assert metadata["subscription_expiry"] == NOW

    @pytest.mark.asyncio
    async def test_waiting_orders_are_ignored(self, service, users):
        await service.handle_paypro_webhook(paypro_webhook("OrderOnWaiting"))
        assert users.updates == []

    @pytest.mark.asyncio
    async def test_invalid_signature(self, service):
        fields = paypro_webhook("OrderCharged")
        fields["SIGNATURE"] = "0" * 64

        with pytest.raises(SignatureInvalid):
            await service.handle_paypro_webhook(fields)

    @pytest.mark.asyncio
    async def test_unparseable_date(self, service):
        with pytest.raises(MalformedWebhookError):
            await service.handle_paypro_webhook(
                paypro_webhook("OrderCharged", SUBSCRIPTION_NEXT_CHARGE_DATE="tomorrow")
            )
