"""
Subscription state rules.

Each function here turns one validated provider event into an app_metadata
patch. They are pure: the caller reads the current record and writes the
patch. In a patch, a None value means "delete this field", so fields we
simply don't know are dropped with drop_unset() before any intentional
deletes are added.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser

from modules.billing.products import get_paddle_id_for_sku, get_sku_for_paddle_id
from modules.users.models import is_lock_active, now_ms, to_epoch_ms

from .models import (
    PAYPRO_ACTIVATING_EVENTS,
    PAYPRO_ENDING_EVENTS,
    PAYPRO_SUBSCRIPTION_EVENTS,
    SUBSCRIPTION_ALERTS,
    PaddleAlert,
    PaddleWebhookEvent,
    PayProIpnType,
    PayProWebhookEvent,
)

# Renewals happen at some unknown time on the billing date
EXPIRY_SLACK = timedelta(days=1)

PAYPRO_RENEWAL_DATE_FORMAT = "%m/%d/%Y %I:%M %p"

_CUSTOM_FIELD_PATTERN = re.compile(r"x-([\w-]+)=(.*?)(?=$|,x-[\w-]+=)")


def drop_unset(patch: dict[str, Any]) -> dict[str, Any]:
    """Remove None values, so unknown fields never overwrite stored ones."""
    return {key: value for key, value in patch.items() if value is not None}


def parse_paddle_date(value: str) -> datetime:
    """Paddle dates are YYYY-MM-DD calendar dates, taken as UTC midnight."""
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_paypro_renewal_date(value: str) -> datetime:
    """Parse a SUBSCRIPTION_NEXT_CHARGE_DATE like '4/21/2023 1:45 PM' (UTC)."""
    return datetime.strptime(value.strip(), PAYPRO_RENEWAL_DATE_FORMAT).replace(tzinfo=timezone.utc)


def parse_paypro_custom_fields(custom_fields: Optional[str]) -> dict[str, str]:
    """
    Best-effort parse of PayPro's ORDER_CUSTOM_FIELDS.

    The format is "x-k=v,x-k=v", but values may contain commas, so it can't
    be split reliably. A value runs until the next ",x-<key>=" or the end.
    """
    if not custom_fields:
        return {}
    return {match.group(1): match.group(2) for match in _CUSTOM_FIELD_PATTERN.finditer(custom_fields)}


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def is_handled_paddle_event(alert_name: str) -> bool:
    return alert_name in {alert.value for alert in SUBSCRIPTION_ALERTS}


def is_paddle_dispute(alert_name: str) -> bool:
    return alert_name == PaddleAlert.PAYMENT_DISPUTE_CREATED.value


def is_handled_paypro_event(ipn_type: str) -> bool:
    return ipn_type in {event.value for event in PAYPRO_SUBSCRIPTION_EVENTS}


def is_paypro_chargeback(ipn_type: str) -> bool:
    return ipn_type == PayProIpnType.ORDER_CHARGED_BACK.value


def paddle_event_patch(event: PaddleWebhookEvent) -> dict[str, Any]:
    """
    Compute the app_metadata patch for a Paddle subscription alert.

    Args:
        event: A subscription alert (see SUBSCRIPTION_ALERTS)

    Returns:
        The patch, with unknown fields dropped. Empty for other alerts.
    """
    plan_id = _to_int(event.subscription_plan_id)
    common = {
        "payment_provider": "paddle",
        "paddle_user_id": _to_int(event.user_id),
        "subscription_id": _to_int(event.subscription_id),
        "subscription_sku": get_sku_for_paddle_id(plan_id),
        "subscription_plan_id": plan_id,
        "update_url": event.update_url,
        "cancel_url": event.cancel_url,
    }

    alert = event.alert_name
    if alert in (PaddleAlert.SUBSCRIPTION_CREATED.value, PaddleAlert.SUBSCRIPTION_UPDATED.value):
        # Updates that change seats send new_quantity instead
        quantity = event.quantity if event.quantity is not None else event.new_quantity
        patch = {
            **common,
            "subscription_status": event.status,
            "subscription_quantity": _to_int(quantity),
            "subscription_expiry": _expiry_after(event.next_bill_date),
        }
    elif alert == PaddleAlert.SUBSCRIPTION_PAYMENT_SUCCEEDED.value:
        patch = {
            **common,
            "subscription_status": event.status,
            "subscription_quantity": _to_int(event.quantity),
            "subscription_expiry": _expiry_after(event.next_bill_date),
            "last_receipt_url": event.receipt_url,
        }
    elif alert == PaddleAlert.SUBSCRIPTION_PAYMENT_FAILED.value:
        # With no retry date left, the subscription is over
        patch = {
            **common,
            "subscription_status": "past_due" if event.next_retry_date else "deleted",
            "subscription_expiry": _expiry_after(event.next_retry_date),
        }
    elif alert == PaddleAlert.SUBSCRIPTION_CANCELLED.value:
        # The effective date is exact, so no slack
        effective = event.cancellation_effective_date
        patch = {
            **common,
            "subscription_status": "deleted",
            "subscription_expiry": to_epoch_ms(parse_paddle_date(effective)) if effective else None,
        }
    else:
        return {}

    return drop_unset(patch)


def _expiry_after(date: Optional[str]) -> Optional[int]:
    if not date:
        return None
    return to_epoch_ms(parse_paddle_date(date) + EXPIRY_SLACK)


def paypro_event_patch(event: PayProWebhookEvent) -> dict[str, Any]:
    """
    Compute the app_metadata patch for a PayPro subscription IPN.

    Chargebacks are handled by paypro_chargeback_patch(), not here.

    Returns:
        The patch, with unknown fields dropped. Empty for other IPN types.
    """
    ipn_type = event.IPN_TYPE_NAME
    next_charge = event.SUBSCRIPTION_NEXT_CHARGE_DATE

    if ipn_type in {e.value for e in PAYPRO_ACTIVATING_EVENTS}:
        status = "active"
        expiry = _paypro_expiry_after(next_charge)
    elif ipn_type == PayProIpnType.SUBSCRIPTION_CHARGE_FAILED.value:
        status = "past_due"
        expiry = _paypro_expiry_after(next_charge)
    elif ipn_type in {e.value for e in PAYPRO_ENDING_EVENTS}:
        # Expiry stays at the last renewal date we stored
        status = "deleted"
        expiry = None
    else:
        return {}

    sku = event.ORDER_ITEM_SKU
    return drop_unset(
        {
            "subscription_status": status,
            "payment_provider": "paypro",
            "subscription_id": event.SUBSCRIPTION_ID or None,
            "subscription_sku": sku,
            "subscription_plan_id": get_paddle_id_for_sku(sku) if sku else None,
            "subscription_quantity": _to_int(event.PRODUCT_QUANTITY),
            "subscription_expiry": expiry,
            "last_receipt_url": event.INVOICE_LINK or None,
        }
    )


def _paypro_expiry_after(next_charge: Optional[str]) -> Optional[int]:
    if not next_charge:
        return None
    return to_epoch_ms(parse_paypro_renewal_date(next_charge) + EXPIRY_SLACK)


def paypro_chargeback_patch(at_ms: Optional[int] = None) -> dict[str, Any]:
    """Ban a charged-back customer and end their subscription immediately."""
    return {
        "banned": True,
        "subscription_status": "deleted",
        "subscription_expiry": at_ms if at_ms is not None else now_ms(),
    }


def team_owner_patch(
    current_metadata: Optional[dict[str, Any]],
    patch: dict[str, Any],
    at_ms: Optional[int] = None,
) -> dict[str, Any]:
    """
    Extend a subscription patch for a team owner.

    New owners get an empty team. Existing membership is never overwritten.
    License locks that have run out are pruned.
    """
    current_metadata = current_metadata or {}
    at_ms = at_ms if at_ms is not None else now_ms()
    owner_patch = dict(patch)

    if "team_member_ids" not in current_metadata:
        owner_patch["team_member_ids"] = []

    owner_patch["locked_licenses"] = [
        lock for lock in current_metadata.get("locked_licenses") or [] if is_lock_active(lock, at_ms)
    ]
    return drop_unset(owner_patch)
