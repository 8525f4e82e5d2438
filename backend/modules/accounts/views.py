"""
Read views over stored user metadata.

App data is a user's effective subscription: team members inherit their
owner's subscription, and team owners have none of their own unless they
are also a member. Billing data is a user's actual subscription, plus the
team they own or belong to.
"""

import copy
from typing import Any, Optional

from modules.billing.products import get_paddle_id_for_sku, get_sku, get_sku_for_paddle_id, is_team_subscription
from modules.users.models import (
    LICENSE_LOCK_DURATION_MS,
    User,
    get_team_owner_id,
    has_paid_subscription,
    is_lock_active,
)
from shared.exceptions import DataInconsistencyError
from shared.reporting import report_error

from .models import TeamMemberEntry, TeamOwnerEntry

ONE_DAY_MS = 24 * 60 * 60 * 1000

# Used internally, never returned from the API
INTERNAL_FIELDS = ("subscription_id", "paddle_user_id")

# Hidden once the user's subscription data has expired
SUBSCRIPTION_PROPERTIES = (
    "subscription_status",
    "subscription_id",
    "subscription_sku",
    "subscription_plan_id",
    "subscription_expiry",
    "subscription_quantity",
    "last_receipt_url",
    "paddle_user_id",
    "update_url",
    "cancel_url",
    "team_member_ids",
    "locked_licenses",
    "subscription_owner_id",
    "joined_team_at",
)

# Moved from a team owner's top level into team_subscription
EXTRACTED_TEAM_SUBSCRIPTION_PROPERTIES = (
    "subscription_status",
    "subscription_sku",
    "subscription_plan_id",
    "subscription_expiry",
    "subscription_quantity",
    "last_receipt_url",
    "update_url",
    "cancel_url",
    "team_member_ids",
)

# Copied from a team owner into each member's view
DELEGATED_TEAM_SUBSCRIPTION_PROPERTIES = (
    "subscription_status",
    "subscription_expiry",
    "subscription_sku",
    "subscription_plan_id",
)

# Not repeated in billing data, which lists team members and owner separately
BILLING_OMITTED_FIELDS = ("feature_flags", "subscription_owner_id", "team_member_ids", "locked_licenses")


def migrate_old_user_data(data: dict[str, Any]) -> dict[str, Any]:
    """
    Bring stored metadata up to the current shape.

    Back-fills subscription_sku from the legacy plan id and vice versa, and
    turns numeric subscription and Paddle user ids into strings.
    """
    data = dict(data)

    if "subscription_plan_id" in data and not data.get("subscription_sku"):
        data["subscription_sku"] = get_sku_for_paddle_id(data["subscription_plan_id"])

    # Old clients still read the plan id
    if "subscription_sku" in data and not data.get("subscription_plan_id"):
        data["subscription_plan_id"] = get_paddle_id_for_sku(data.get("subscription_sku") or "pro-monthly")

    for field in ("subscription_id", "paddle_user_id"):
        if isinstance(data.get(field), int) and not isinstance(data.get(field), bool):
            data[field] = str(data[field])

    return data


def owns_team_subscription(metadata: Optional[dict[str, Any]]) -> bool:
    """Whether the user pays for a team's seats, rather than holding one."""
    return has_paid_subscription(metadata) and is_team_subscription(get_sku(metadata))


def count_locked_licenses(owner_metadata: dict[str, Any], at_ms: int) -> int:
    """Number of the owner's seats still locked at at_ms."""
    return sum(1 for lock in owner_metadata.get("locked_licenses") or [] if is_lock_active(lock, at_ms))


def get_max_team_size(owner_metadata: dict[str, Any], at_ms: int) -> int:
    """Seats the owner can currently assign: purchased seats minus locked ones."""
    return (owner_metadata.get("subscription_quantity") or 0) - count_locked_licenses(owner_metadata, at_ms)


def build_user_app_data(
    user_id: str,
    raw_metadata: dict[str, Any],
    owner_metadata: Optional[dict[str, Any]],
    at_ms: int,
) -> dict[str, Any]:
    """
    Build a user's effective subscription view.

    Args:
        user_id: The user being viewed
        raw_metadata: The user's migrated metadata, including email
        owner_metadata: Their team owner's metadata, if they have an owner
            and it could be loaded
        at_ms: Current time, epoch ms

    Returns:
        The app data to sign and send to the client
    """
    view = copy.deepcopy({k: v for k, v in raw_metadata.items() if k not in INTERNAL_FIELDS})

    if owns_team_subscription(raw_metadata):
        # A team subscription is for the team's members, not for its owner
        view.pop("locked_licenses", None)
        view["team_subscription"] = {
            key: view.pop(key) for key in EXTRACTED_TEAM_SUBSCRIPTION_PROPERTIES if key in view
        }

    if get_team_owner_id(raw_metadata) and owner_metadata is not None:
        if owns_team_subscription(owner_metadata):
            active_members = (owner_metadata.get("team_member_ids") or [])[: get_max_team_size(owner_metadata, at_ms)]

            if user_id in active_members:
                for field in DELEGATED_TEAM_SUBSCRIPTION_PROPERTIES:
                    if field in owner_metadata:
                        view[field] = owner_metadata[field]
                    else:
                        view.pop(field, None)
            else:
                report_error(DataInconsistencyError(f"Inconsistent team membership for {user_id}"))
                del view["subscription_owner_id"]

    # Old clients need some subscription_id for paid users, though never read its value
    if "subscription_id" in raw_metadata:
        view["subscription_id"] = -1

    # No expiry means never expire
    expiry = view.get("subscription_expiry")
    if expiry is not None and expiry < at_ms - ONE_DAY_MS:
        for key in SUBSCRIPTION_PROPERTIES:
            view.pop(key, None)

    return view


def billing_base_data(raw_metadata: dict[str, Any]) -> dict[str, Any]:
    """The billing-related, non-duplicated part of a user's metadata."""
    omitted = set(BILLING_OMITTED_FIELDS) | set(INTERNAL_FIELDS)
    return copy.deepcopy({k: v for k, v in raw_metadata.items() if k not in omitted})


def build_team_members(
    owner_id: str,
    owner_metadata: dict[str, Any],
    members: list[User],
    at_ms: int,
) -> Optional[list[TeamMemberEntry]]:
    """
    List the members of a team, as seen by its owner.

    Members are ordered as in team_member_ids, so anybody past the seat
    limit after a quantity change is at the end. Inconsistencies are
    reported and flagged on the entry.

    Returns:
        The entries, or None if the user doesn't own a team
    """
    if not owns_team_subscription(owner_metadata):
        return None

    member_ids = owner_metadata.get("team_member_ids") or []

    def position(member: User) -> float:
        return member_ids.index(member.user_id) if member.user_id in member_ids else float("inf")

    max_team_size = get_max_team_size(owner_metadata, at_ms)
    entries = []
    for i, member in enumerate(sorted(members, key=position)):
        if member.user_id not in member_ids:
            error = "inconsistent-member-data"
        elif i >= max_team_size:
            error = "member-beyond-team-limit"
        else:
            error = None

        if error:
            report_error(
                DataInconsistencyError(f"Billing data member issue for {member.user_id} of team {owner_id}: {error}")
            )

        # Removing a recently added member locks their license
        joined_at = member.app_metadata.get("joined_team_at") or 0
        entries.append(
            TeamMemberEntry(
                id=member.user_id,
                name=member.email,
                locked=is_lock_active(joined_at, at_ms),
                error=error,
            )
        )

    if len(entries) != len(member_ids):
        report_error(DataInconsistencyError(f"Missing team members for team {owner_id}"))

    return entries


def build_team_owner(user_id: str, owner_id: str, owner_data: dict[str, Any], at_ms: int) -> TeamOwnerEntry:
    """
    Describe a member's team owner, flagging membership the owner doesn't agree with.

    Args:
        owner_data: The owner's migrated metadata, including email
    """
    member_ids = owner_data.get("team_member_ids") or []

    if user_id not in member_ids:
        error = "inconsistent-owner-data"
    elif member_ids.index(user_id) >= get_max_team_size(owner_data, at_ms):
        error = "member-beyond-owner-limit"
    else:
        error = None

    if error:
        report_error(DataInconsistencyError(f"Billing data owner issue for {user_id}: {error}"))

    return TeamOwnerEntry(id=owner_id, name=owner_data.get("email"), error=error)


def locked_license_expiries(raw_metadata: dict[str, Any], at_ms: int) -> Optional[list[int]]:
    """When each of the owner's locked seats frees up, for locks still in force."""
    locks = raw_metadata.get("locked_licenses")
    if locks is None:
        return None
    return [lock + LICENSE_LOCK_DURATION_MS for lock in locks if is_lock_active(lock, at_ms)]
