"""
Billing module.

Handles the product catalogue, payment provider API clients and checkout.

Public API:
- ICheckoutService: Interface for building checkout URLs
- PaddleClient, PayProClient: Payment provider API clients
- TransactionData, CheckoutOptions: Billing data
- Product helpers: get_sku, is_team_subscription, is_pro_subscription
- Billing exceptions: CheckoutError, InvalidCheckoutRequestError, UnknownSkuError
"""

from .interfaces import ICheckoutService
from .models import (
    CheckoutOptions,
    TransactionData,
    TransactionStatus,
)
from .paddle_client import PaddleClient
from .paypro_client import PayProClient
from .products import (
    SKUS,
    PRICED_SKUS,
    get_sku,
    get_sku_for_paddle_id,
    get_paddle_id_for_sku,
    is_pro_subscription,
    is_team_subscription,
)
from .exceptions import (
    CheckoutError,
    InvalidCheckoutRequestError,
    UnknownSkuError,
)

__all__ = [
    # Interface
    "ICheckoutService",
    # Clients
    "PaddleClient",
    "PayProClient",
    # Models
    "CheckoutOptions",
    "TransactionData",
    "TransactionStatus",
    "SKUS",
    "PRICED_SKUS",
    "get_sku",
    "get_sku_for_paddle_id",
    "get_paddle_id_for_sku",
    "is_pro_subscription",
    "is_team_subscription",
    # Exceptions
    "CheckoutError",
    "InvalidCheckoutRequestError",
    "UnknownSkuError",
]
