"""
Webhook module data models.

Providers post flat form fields. Only the fields the subscription rules
read are declared; everything else is kept as extra data so signature
checks and logging still see the whole payload.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PaddleAlert(str, Enum):
    """Paddle alert_name values we act on."""

    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    SUBSCRIPTION_PAYMENT_SUCCEEDED = "subscription_payment_succeeded"
    SUBSCRIPTION_PAYMENT_FAILED = "subscription_payment_failed"
    PAYMENT_DISPUTE_CREATED = "payment_dispute_created"


SUBSCRIPTION_ALERTS = frozenset(
    {
        PaddleAlert.SUBSCRIPTION_CREATED,
        PaddleAlert.SUBSCRIPTION_UPDATED,
        PaddleAlert.SUBSCRIPTION_CANCELLED,
        PaddleAlert.SUBSCRIPTION_PAYMENT_SUCCEEDED,
        PaddleAlert.SUBSCRIPTION_PAYMENT_FAILED,
    }
)


class PayProIpnType(str, Enum):
    """PayPro IPN_TYPE_NAME values."""

    ORDER_CHARGED = "OrderCharged"  # Initial subscription
    ORDER_CHARGED_BACK = "OrderChargedBack"
    ORDER_ON_WAITING = "OrderOnWaiting"  # Non-instant payment, nothing to do yet
    SUBSCRIPTION_RENEWED = "SubscriptionRenewed"
    SUBSCRIPTION_TERMINATED = "SubscriptionTerminated"
    SUBSCRIPTION_FINISHED = "SubscriptionFinished"
    SUBSCRIPTION_CHARGE_SUCCEED = "SubscriptionChargeSucceed"
    SUBSCRIPTION_CHARGE_FAILED = "SubscriptionChargeFailed"
    SUBSCRIPTION_SUSPENDED = "SubscriptionSuspended"


PAYPRO_ACTIVATING_EVENTS = frozenset(
    {
        PayProIpnType.ORDER_CHARGED,
        PayProIpnType.SUBSCRIPTION_RENEWED,
        PayProIpnType.SUBSCRIPTION_CHARGE_SUCCEED,
    }
)

PAYPRO_ENDING_EVENTS = frozenset(
    {
        PayProIpnType.SUBSCRIPTION_TERMINATED,
        PayProIpnType.SUBSCRIPTION_SUSPENDED,
        PayProIpnType.SUBSCRIPTION_FINISHED,
    }
)

PAYPRO_SUBSCRIPTION_EVENTS = (
    PAYPRO_ACTIVATING_EVENTS | PAYPRO_ENDING_EVENTS | {PayProIpnType.SUBSCRIPTION_CHARGE_FAILED}
)


class PaddleWebhookEvent(BaseModel):
    """A Paddle subscription alert, as posted to the webhook."""

    model_config = ConfigDict(extra="allow")

    alert_name: str
    email: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[str] = None
    subscription_id: Optional[str] = None
    subscription_plan_id: Optional[str] = None
    quantity: Optional[str] = None
    new_quantity: Optional[str] = None
    next_bill_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    next_retry_date: Optional[str] = Field(None, description="YYYY-MM-DD, only while retrying")
    cancellation_effective_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    receipt_url: Optional[str] = None
    update_url: Optional[str] = None
    cancel_url: Optional[str] = None
    passthrough: Optional[str] = None


class PayProWebhookEvent(BaseModel):
    """A PayPro IPN, as posted to the webhook."""

    model_config = ConfigDict(extra="allow")

    IPN_TYPE_NAME: str
    CUSTOMER_EMAIL: Optional[str] = None
    ORDER_ID: Optional[str] = None
    ORDER_STATUS: Optional[str] = None
    ORDER_ITEM_SKU: Optional[str] = None
    PRODUCT_QUANTITY: Optional[str] = None
    SUBSCRIPTION_ID: Optional[str] = None
    SUBSCRIPTION_STATUS_NAME: Optional[str] = None
    SUBSCRIPTION_NEXT_CHARGE_DATE: Optional[str] = Field(
        None, description='Like "4/21/2023 1:45 PM" (UTC), empty once terminated'
    )
    ORDER_PLACED_TIME_UTC: Optional[str] = Field(None, description='Like "03/21/2023 19:02:59"')
    INVOICE_LINK: Optional[str] = None
    ORDER_CUSTOM_FIELDS: Optional[str] = Field(
        None, description="k=v,k=v pairs, where values may contain commas"
    )
