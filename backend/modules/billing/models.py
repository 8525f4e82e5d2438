"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TransactionStatus(str, Enum):
    """Normalized order status across payment providers."""

    WAITING = "waiting"
    CANCELED = "canceled"
    REFUNDED = "refunded"
    DISPUTED = "disputed"
    COMPLETED = "completed"


class TransactionData(BaseModel):
    """
    One past payment, as shown on the billing page.

    Paddle and PayPro both map into this shape. Paddle transactions carry
    product_id, PayPro orders carry sku.
    """

    order_id: str = Field(..., description="Provider order id")
    receipt_url: Optional[str] = Field(None, description="Receipt or invoice link")
    product_id: Optional[int] = Field(None, description="Paddle product id")
    sku: Optional[str] = Field(None, description="Product SKU")
    created_at: str = Field(..., description="ISO 8601 order time")
    status: str = Field(..., description="Order status")
    currency: str = Field(..., description="ISO 4217 currency code")
    amount: str = Field(..., description="Amount as a decimal string")


class CheckoutOptions(BaseModel):
    """
    Everything needed to build a provider checkout URL.

    Prices are already resolved for the buyer's region.
    """

    sku: str = Field(..., description="Product SKU")
    email: Optional[str] = Field(None, description="Prefilled buyer email")
    quantity: Optional[int] = Field(None, ge=1, description="Seats, always set for team SKUs")
    discount_code: Optional[str] = Field(None, description="Requested discount code")
    country_code: Optional[str] = Field(None, description="ISO 3166 alpha-2 country")
    currency: str = Field(..., description="ISO 4217 currency code")
    price: float = Field(..., gt=0, description="Net unit price in currency")
    source: str = Field(..., description="Where the checkout was started from")
    return_url: Optional[str] = Field(None, description="Where to send the buyer afterwards")
    passthrough: Optional[str] = Field(None, description="JSON returned to us in webhooks")
