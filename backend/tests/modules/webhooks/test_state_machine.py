"""Tests for subscription state rules."""

import pytest
from datetime import datetime, timezone

from modules.users.models import LICENSE_LOCK_DURATION_MS, to_epoch_ms
from modules.webhooks.models import PaddleWebhookEvent, PayProWebhookEvent
from modules.webhooks.state_machine import (
    drop_unset,
    is_handled_paddle_event,
    is_handled_paypro_event,
    is_paddle_dispute,
    is_paypro_chargeback,
    paddle_event_patch,
    parse_paypro_custom_fields,
    parse_paypro_renewal_date,
    paypro_chargeback_patch,
    paypro_event_patch,
    team_owner_patch,
)


def _ms(*args) -> int:
    return to_epoch_ms(datetime(*args, tzinfo=timezone.utc))


def paddle_event(alert_name: str, **fields) -> PaddleWebhookEvent:
    values = {
        "alert_name": alert_name,
        "email": "owner@example.com",
        "user_id": "42",
        "subscription_id": "12345",
        "subscription_plan_id": "550788",
        "update_url": "https://paddle.example.com/update",
        "cancel_url": "https://paddle.example.com/cancel",
    }
    values.update(fields)
    return PaddleWebhookEvent(**values)


def paypro_event(ipn_type: str, **fields) -> PayProWebhookEvent:
    values = {
        "IPN_TYPE_NAME": ipn_type,
        "CUSTOMER_EMAIL": "buyer@example.com",
        "ORDER_ITEM_SKU": "pro-annual",
        "PRODUCT_QUANTITY": "1",
        "SUBSCRIPTION_ID": "778899",
        "SUBSCRIPTION_NEXT_CHARGE_DATE": "4/21/2023 1:45 PM",
        "INVOICE_LINK": "https://store.example.com/invoice/1",
    }
    values.update(fields)
    return PayProWebhookEvent(**values)


class TestClassification:
    def test_paddle(self):
        assert is_handled_paddle_event("subscription_created")
        assert is_handled_paddle_event("subscription_payment_failed")
        assert not is_handled_paddle_event("payment_refunded")
        assert is_paddle_dispute("payment_dispute_created")
        assert not is_handled_paddle_event("payment_dispute_created")

    def test_paypro(self):
        assert is_handled_paypro_event("OrderCharged")
        assert is_handled_paypro_event("SubscriptionChargeFailed")
        assert not is_handled_paypro_event("OrderOnWaiting")
        assert is_paypro_chargeback("OrderChargedBack")
        assert not is_handled_paypro_event("OrderChargedBack")


class TestPaddleEventPatch:
    def test_team_subscription_created(self):
        """A new team subscription sets every subscription field, with a day of slack on expiry."""
        patch = paddle_event_patch(
            paddle_event("subscription_created", status="active", quantity="5", next_bill_date="2025-01-01")
        )

        assert patch == {
            "payment_provider": "paddle",
            "paddle_user_id": 42,
            "subscription_id": 12345,
            "subscription_sku": "team-annual",
            "subscription_plan_id": 550788,
            "subscription_status": "active",
            "subscription_quantity": 5,
            "subscription_expiry": _ms(2025, 1, 2),
            "update_url": "https://paddle.example.com/update",
            "cancel_url": "https://paddle.example.com/cancel",
        }
        assert patch["subscription_expiry"] == 1735776000000

    def test_update_uses_new_quantity(self):
        """Seat changes arrive as new_quantity."""
        patch = paddle_event_patch(
            paddle_event("subscription_updated", status="active", new_quantity="8", next_bill_date="2025-01-01")
        )
        assert patch["subscription_quantity"] == 8

    def test_payment_succeeded_records_receipt(self):
        patch = paddle_event_patch(
            paddle_event(
                "subscription_payment_succeeded",
                subscription_plan_id="550380",
                status="active",
                quantity="1",
                next_bill_date="2025-02-01",
                receipt_url="https://receipts.example.com/1",
            )
        )
        assert patch["subscription_sku"] == "pro-monthly"
        assert patch["last_receipt_url"] == "https://receipts.example.com/1"
        assert patch["subscription_expiry"] == _ms(2025, 2, 2)

    def test_payment_failed_with_retry(self):
        """While Paddle is retrying, the subscription is past due until the retry."""
        patch = paddle_event_patch(paddle_event("subscription_payment_failed", next_retry_date="2025-02-10"))
        assert patch["subscription_status"] == "past_due"
        assert patch["subscription_expiry"] == _ms(2025, 2, 11)

    def test_payment_failed_without_retry(self):
        """With no retries left the subscription is deleted, and expiry is left alone."""
        patch = paddle_event_patch(paddle_event("subscription_payment_failed"))
        assert patch["subscription_status"] == "deleted"
        assert "subscription_expiry" not in patch

    def test_cancelled_expires_exactly(self):
        """Cancellations take effect on the given date, with no slack."""
        patch = paddle_event_patch(
            paddle_event("subscription_cancelled", cancellation_effective_date="2025-03-01")
        )
        assert patch["subscription_status"] == "deleted"
        assert patch["subscription_expiry"] == _ms(2025, 3, 1)

    def test_unknown_fields_are_dropped(self):
        """Fields the event doesn't carry must not be deleted from the record."""
        patch = paddle_event_patch(
            PaddleWebhookEvent(alert_name="subscription_cancelled", subscription_plan_id="550380")
        )
        assert None not in patch.values()
        assert "update_url" not in patch
        assert "paddle_user_id" not in patch

    def test_other_alerts(self):
        assert paddle_event_patch(paddle_event("payment_refunded")) == {}

    def test_unparseable_ids(self):
        with pytest.raises(ValueError):
            paddle_event_patch(paddle_event("subscription_created", subscription_id="abc"))


class TestPayProEventPatch:
    def test_order_charged(self):
        """Activations set the subscription active until a day after the next charge."""
        patch = paypro_event_patch(paypro_event("OrderCharged"))

        assert patch == {
            "subscription_status": "active",
            "payment_provider": "paypro",
            "subscription_id": "778899",
            "subscription_sku": "pro-annual",
            "subscription_plan_id": 550382,
            "subscription_quantity": 1,
            "subscription_expiry": _ms(2023, 4, 22, 13, 45),
            "last_receipt_url": "https://store.example.com/invoice/1",
        }

    def test_charge_failed(self):
        patch = paypro_event_patch(paypro_event("SubscriptionChargeFailed"))
        assert patch["subscription_status"] == "past_due"
        assert patch["subscription_expiry"] == _ms(2023, 4, 22, 13, 45)

    @pytest.mark.parametrize("ipn_type", ["SubscriptionTerminated", "SubscriptionFinished", "SubscriptionSuspended"])
    def test_ending_events(self, ipn_type):
        """Ended subscriptions keep their last stored expiry."""
        patch = paypro_event_patch(paypro_event(ipn_type, SUBSCRIPTION_NEXT_CHARGE_DATE=""))
        assert patch["subscription_status"] == "deleted"
        assert "subscription_expiry" not in patch

    def test_empty_fields_are_dropped(self):
        patch = paypro_event_patch(paypro_event("SubscriptionRenewed", SUBSCRIPTION_ID="", INVOICE_LINK=""))
        assert "subscription_id" not in patch
        assert "last_receipt_url" not in patch

    def test_other_events(self):
        assert paypro_event_patch(paypro_event("OrderOnWaiting")) == {}

    def test_chargeback_patch(self):
        """Chargebacks ban the customer and end the subscription now."""
        assert paypro_chargeback_patch(at_ms=1234) == {
            "banned": True,
            "subscription_status": "deleted",
            "subscription_expiry": 1234,
        }


class TestPayProParsing:
    def test_renewal_date(self):
        assert parse_paypro_renewal_date("12/01/2024 9:05 AM") == datetime(2024, 12, 1, 9, 5, tzinfo=timezone.utc)

    def test_custom_fields(self):
        """Values may contain commas, so each value runs until the next x- key."""
        fields = parse_paypro_custom_fields(
            'x-source=app,x-passthrough={"id":"abc","country":"GBR"},x-return-url=https://x.test/a,b'
        )
        assert fields == {
            "source": "app",
            "passthrough": '{"id":"abc","country":"GBR"}',
            "return-url": "https://x.test/a,b",
        }

    def test_no_custom_fields(self):
        assert parse_paypro_custom_fields(None) == {}
        assert parse_paypro_custom_fields("") == {}


class TestTeamOwnerPatch:
    NOW = _ms(2025, 1, 10)

    def test_new_owner_gets_empty_team(self):
        patch = team_owner_patch({}, {"subscription_status": "active"}, at_ms=self.NOW)
        assert patch == {"subscription_status": "active", "team_member_ids": [], "locked_licenses": []}

    def test_existing_team_is_kept(self):
        """Membership is never overwritten by subscription events."""
        patch = team_owner_patch({"team_member_ids": ["a", "b"]}, {"subscription_status": "active"}, at_ms=self.NOW)
        assert "team_member_ids" not in patch

    def test_expired_locks_are_pruned(self):
        active_lock = self.NOW - 1000
        expired_lock = self.NOW - LICENSE_LOCK_DURATION_MS - 1
        patch = team_owner_patch(
            {"team_member_ids": [], "locked_licenses": [active_lock, expired_lock]},
            {"subscription_status": "active"},
            at_ms=self.NOW,
        )
        assert patch["locked_licenses"] == [active_lock]


def test_drop_unset():
    assert drop_unset({"a": None, "b": 0, "c": [], "d": False}) == {"b": 0, "c": [], "d": False}
