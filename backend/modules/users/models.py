"""
User module data models.

A user's app_metadata is a tagged union: which shape applies is decided by
which fields are present. classify_metadata() is the one place that decides
this, so callers never check fields themselves.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


# A removed team member's seat can't be reassigned for this long
LICENSE_LOCK_DURATION = timedelta(hours=48)
LICENSE_LOCK_DURATION_MS = int(LICENSE_LOCK_DURATION.total_seconds() * 1000)

SubscriptionStatus = Literal["trialing", "active", "past_due", "deleted"]
PaymentProvider = Literal["paddle", "paypro", "manual"]


class MetadataKind(str, Enum):
    """Which app_metadata shape a user currently has."""

    BASE = "base"
    TRIAL = "trial"
    PAYING = "paying"
    TEAM_OWNER = "team_owner"
    TEAM_MEMBER = "team_member"


class BaseMetadata(BaseModel):
    """Fields every user may carry."""

    model_config = ConfigDict(extra="allow")

    feature_flags: Optional[list[str]] = None
    banned: Optional[bool] = None


class TrialUserMetadata(BaseMetadata):
    """A user with a subscription status but no payment details."""

    subscription_status: SubscriptionStatus
    subscription_sku: Optional[str] = None
    subscription_plan_id: Optional[int] = Field(
        None, description="Legacy Paddle plan id, kept populated for old clients"
    )
    subscription_expiry: Optional[int] = Field(None, description="Epoch milliseconds")


class PayingUserMetadata(TrialUserMetadata):
    """A user paying through a payment provider."""

    payment_provider: Optional[PaymentProvider] = Field(
        None, description="Unset for subscriptions that predate multiple providers"
    )
    paddle_user_id: Optional[int | str] = None
    subscription_id: int | str
    subscription_quantity: Optional[int] = None
    last_receipt_url: Optional[str] = None
    update_url: Optional[str] = None
    cancel_url: Optional[str] = None


class TeamOwnerMetadata(PayingUserMetadata):
    """A user who owns a team subscription and assigns its seats."""

    team_member_ids: list[str] = Field(default_factory=list)
    locked_licenses: Optional[list[int]] = Field(
        None, description="Epoch ms at which each locked seat was freed"
    )
    subscription_owner_id: Optional[str] = Field(
        None, description="Owners can be members of their own team"
    )


class TeamMemberMetadata(BaseMetadata):
    """A user whose subscription is inherited from a team owner."""

    subscription_owner_id: str
    joined_team_at: Optional[int] = Field(None, description="Epoch ms, unset for old members")


METADATA_MODELS: dict[MetadataKind, type[BaseMetadata]] = {
    MetadataKind.BASE: BaseMetadata,
    MetadataKind.TRIAL: TrialUserMetadata,
    MetadataKind.PAYING: PayingUserMetadata,
    MetadataKind.TEAM_OWNER: TeamOwnerMetadata,
    MetadataKind.TEAM_MEMBER: TeamMemberMetadata,
}

SUBSCRIBED_KINDS = frozenset({MetadataKind.TRIAL, MetadataKind.PAYING, MetadataKind.TEAM_OWNER})
PAID_KINDS = frozenset({MetadataKind.PAYING, MetadataKind.TEAM_OWNER})


def classify_metadata(metadata: Optional[dict[str, Any]]) -> MetadataKind:
    """
    Decide which app_metadata shape applies.

    Owner fields win over member fields, since owners may also be members
    of their own team. Membership itself is read with get_team_owner_id(),
    since lapsed subscribers keep their subscription fields after joining.
    """
    metadata = metadata or {}

    if "subscription_id" in metadata:
        return MetadataKind.TEAM_OWNER if "team_member_ids" in metadata else MetadataKind.PAYING
    if "subscription_status" in metadata:
        return MetadataKind.TRIAL
    if metadata.get("subscription_owner_id"):
        return MetadataKind.TEAM_MEMBER
    return MetadataKind.BASE


def parse_metadata(metadata: Optional[dict[str, Any]]) -> BaseMetadata:
    """Validate raw app_metadata into the model for its shape."""
    metadata = metadata or {}
    return METADATA_MODELS[classify_metadata(metadata)].model_validate(metadata)


def has_own_subscription(metadata: Optional[dict[str, Any]]) -> bool:
    """Whether the user holds a subscription of their own, trial included."""
    return classify_metadata(metadata) in SUBSCRIBED_KINDS


def has_paid_subscription(metadata: Optional[dict[str, Any]]) -> bool:
    """Whether the user pays through a provider, so has a subscription id."""
    return classify_metadata(metadata) in PAID_KINDS


def get_team_owner_id(metadata: Optional[dict[str, Any]]) -> Optional[str]:
    """The owner of the team this user is a member of, if any."""
    if classify_metadata(metadata) is MetadataKind.BASE:
        return None
    return metadata.get("subscription_owner_id") or None


def is_subscription_active(metadata: Optional[dict[str, Any]], at_ms: int) -> bool:
    """Whether the user's own subscription is active and unexpired at at_ms."""
    if not has_own_subscription(metadata):
        return False
    return metadata.get("subscription_status") == "active" and (metadata.get("subscription_expiry") or 0) > at_ms


class User(BaseModel):
    """A user record as held by the identity provider."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., description="Identity provider user id")
    email: str = Field(..., description="Email address (lower-cased for matching)")
    app_metadata: dict[str, Any] = Field(default_factory=dict)


class MirroredUser(BaseModel):
    """A row of the relational users mirror."""

    model_config = ConfigDict(extra="ignore")

    auth0_user_id: str
    email: str
    app_metadata: dict[str, Any] = Field(default_factory=dict)


def to_epoch_ms(moment: datetime) -> int:
    """Epoch milliseconds, the unit every stored timestamp uses."""
    return int(moment.timestamp() * 1000)


def now_ms() -> int:
    return to_epoch_ms(datetime.now(timezone.utc))


def is_lock_active(lock_started_at: int, at_ms: int) -> bool:
    """Whether a license lock that started at lock_started_at still holds at at_ms."""
    return lock_started_at + LICENSE_LOCK_DURATION_MS > at_ms
