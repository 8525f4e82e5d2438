"""
Product catalogue.

SKUs are the generic product identifiers. Paddle plan ids are kept because
old subscriptions and old clients still identify plans by them.
"""

from typing import Any, Optional

SKUS = ("pro-monthly", "pro-annual", "pro-perpetual", "team-monthly", "team-annual")

# Paddle plan id for each SKU
PADDLE_PLAN_IDS: dict[str, int] = {
    "pro-monthly": 550380,
    "pro-annual": 550382,
    "pro-perpetual": 599788,
    "team-monthly": 550789,
    "team-annual": 550788,
}

PRO_SUBSCRIPTION_IDS = (550380, 550382, 599788)
TEAM_SUBSCRIPTION_IDS = (550788, 550789)

SKU_TO_PAYPRO_ID: dict[str, int] = {
    "pro-monthly": 79920,
    "pro-annual": 82586,
    "team-annual": 82587,
    "team-monthly": 82588,
}

# SKUs sold through the checkout and price endpoints
PRICED_SKUS = ("pro-monthly", "pro-annual", "team-monthly", "team-annual")

PRODUCT_TITLES: dict[str, str] = {
    "pro-monthly": "Pro (monthly)",
    "pro-annual": "Pro (annual)",
    "team-monthly": "Team (monthly)",
    "team-annual": "Team (annual)",
}

_SKUS_BY_PLAN_ID = {plan_id: sku for sku, plan_id in PADDLE_PLAN_IDS.items()}


def get_sku_for_paddle_id(plan_id: Any) -> Optional[str]:
    """Map a Paddle plan id (int or numeric string) to its SKU."""
    try:
        return _SKUS_BY_PLAN_ID.get(int(plan_id))
    except (TypeError, ValueError):
        return None


def get_paddle_id_for_sku(sku: str) -> Optional[int]:
    return PADDLE_PLAN_IDS.get(sku)


def is_pro_subscription(sku: Optional[str]) -> bool:
    return bool(sku) and sku.startswith("pro-")


def is_team_subscription(sku: Optional[str]) -> bool:
    return bool(sku) and sku.startswith("team-")


def get_sku(metadata: Optional[dict[str, Any]]) -> Optional[str]:
    """The SKU of a metadata record, falling back to its legacy plan id."""
    if not metadata:
        return None
    return metadata.get("subscription_sku") or get_sku_for_paddle_id(
        metadata.get("subscription_plan_id")
    )


def get_billing_interval(sku: str) -> str:
    """'month' or 'year' for a priced SKU."""
    return "year" if sku.endswith("-annual") else "month"
