"""
Accounts service.

Serves a signed-in user's account views and applies the subscription and
team changes they request.
"""

import asyncio
import logging
import time
from typing import Any, Optional

from cachetools import LRUCache, TTLCache

from modules.billing.models import TransactionData
from modules.billing.paddle_client import PaddleClient
from modules.billing.paypro_client import PayProClient
from modules.users.exceptions import DuplicateUserError
from modules.users.interfaces import IUserService
from modules.users.models import (
    MetadataKind,
    User,
    classify_metadata,
    get_team_owner_id,
    has_paid_subscription,
    is_lock_active,
    is_subscription_active,
    now_ms,
)
from shared.exceptions import AccountsError, StatusError
from shared.reporting import report_error

from .exceptions import NoTeamSubscriptionError, SubscriptionUpdateError, TeamConflictError
from .interfaces import IAccountsService
from .models import TeamMemberEntry, TeamOwnerEntry
from .signing import DataSigner
from .views import (
    billing_base_data,
    build_team_members,
    build_team_owner,
    build_user_app_data,
    get_max_team_size,
    locked_license_expiries,
    migrate_old_user_data,
    owns_team_subscription,
)

logger = logging.getLogger(__name__)

# Paddle can be very slow to list transactions
TRANSACTIONS_CACHE_TTL_SECONDS = 60 * 60
TRANSACTIONS_CACHE_SIZE = 5_000
PADDLE_USER_ID_CACHE_SIZE = 10_000

# Webhook delivery delays shouldn't leave users unable to join a team
SUBSCRIPTION_EXPIRY_MARGIN_MS = 60 * 1000


class AccountsService(IAccountsService):
    """
    Account views and self-service subscription management.

    Transaction and Paddle user id caches are per process.
    """

    def __init__(
        self,
        users: IUserService,
        paddle: PaddleClient,
        paypro: PayProClient,
        signer: DataSigner,
        billing_email: str = "billing@example.com",
        poll_interval: float = 0.5,
        poll_timeout: float = 30.0,
    ):
        self._users = users
        self._paddle = paddle
        self._paypro = paypro
        self._signer = signer
        self._billing_email = billing_email
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._transactions_cache: TTLCache[str, list[TransactionData]] = TTLCache(
            maxsize=TRANSACTIONS_CACHE_SIZE, ttl=TRANSACTIONS_CACHE_TTL_SECONDS
        )
        self._paddle_user_ids: LRUCache[str, str] = LRUCache(maxsize=PADDLE_USER_ID_CACHE_SIZE)

    async def _get_raw_user_data(self, user_id: str) -> dict[str, Any]:
        user = await self._users.get_user(user_id)
        return migrate_old_user_data({"email": user.email, **user.app_metadata})

    async def get_app_data(self, user_id: str) -> dict[str, Any]:
        raw = await self._get_raw_user_data(user_id)

        owner_metadata = None
        owner_id = get_team_owner_id(raw)
        if owner_id:
            try:
                owner_metadata = (await self._users.get_user(owner_id)).app_metadata
            except AccountsError as e:
                report_error(e, operation="loading team owner")

        return build_user_app_data(user_id, raw, owner_metadata, now_ms())

    async def get_app_data_token(self, user_id: str) -> str:
        return self._signer.sign_app_data(await self.get_app_data(user_id))

    async def get_billing_data(self, user_id: str) -> dict[str, Any]:
        raw = await self._get_raw_user_data(user_id)
        at_ms = now_ms()

        transactions, team_members, team_owner = await asyncio.gather(
            self._get_transactions(raw),
            self._get_team_members(user_id, raw, at_ms),
            self._get_team_owner(user_id, raw, at_ms),
        )

        billing_data = billing_base_data(raw)
        billing_data.update(
            {
                "email": raw["email"],
                "transactions": [t.model_dump(exclude_none=True) for t in transactions],
                "team_members": (
                    [m.model_dump(exclude_none=True) for m in team_members] if team_members is not None else None
                ),
                "team_owner": team_owner.model_dump(exclude_none=True) if team_owner else None,
                "locked_license_expiries": locked_license_expiries(raw, at_ms),
            }
        )
        return {key: value for key, value in billing_data.items() if value is not None}

    async def get_billing_data_token(self, user_id: str) -> str:
        return self._signer.sign_billing_data(await self.get_billing_data(user_id))

    async def _get_transactions(self, raw: dict[str, Any]) -> list[TransactionData]:
        provider = raw.get("payment_provider")

        # No provider means the subscription predates PayPro
        if provider in (None, "paddle"):
            paddle_user_id = await self._get_paddle_user_id(raw)
            if not paddle_user_id:
                return []
            cache_key = f"paddle-{paddle_user_id}"
        elif provider == "paypro":
            cache_key = f"paypro-{raw['email']}"
        else:
            return []

        cached = self._transactions_cache.get(cache_key)
        if cached is not None:
            return cached

        if provider == "paypro":
            transactions = await self._paypro.get_orders(raw["email"])
        else:
            transactions = await self._paddle.get_user_transactions(paddle_user_id)
        self._transactions_cache[cache_key] = transactions
        return transactions

    async def _get_paddle_user_id(self, raw: dict[str, Any]) -> Optional[str]:
        if raw.get("paddle_user_id"):
            return str(raw["paddle_user_id"])

        subscription_id = raw.get("subscription_id")
        if not subscription_id:
            return None

        # A subscription's Paddle user never changes
        subscription_id = str(subscription_id)
        paddle_user_id = self._paddle_user_ids.get(subscription_id)
        if paddle_user_id is None:
            paddle_user_id = await self._paddle.get_user_id_for_subscription(subscription_id)
            self._paddle_user_ids[subscription_id] = paddle_user_id
        return paddle_user_id

    async def _get_team_members(
        self, user_id: str, raw: dict[str, Any], at_ms: int
    ) -> Optional[list[TeamMemberEntry]]:
        if not owns_team_subscription(raw):
            return None
        members = await self._users.get_team_members(user_id)
        return build_team_members(user_id, raw, members, at_ms)

    async def _get_team_owner(self, user_id: str, raw: dict[str, Any], at_ms: int) -> Optional[TeamOwnerEntry]:
        owner_id = get_team_owner_id(raw)
        if not owner_id:
            return None

        try:
            # Owners can be members of their own team
            owner_data = raw if owner_id == user_id else await self._get_raw_user_data(owner_id)
            return build_team_owner(user_id, owner_id, owner_data, at_ms)
        except AccountsError as e:
            report_error(e, operation="loading team owner")
            return TeamOwnerEntry(id=owner_id, error="owner-unavailable")

    async def cancel_subscription(self, user_id: str) -> None:
        user = await self._users.get_user(user_id)
        metadata = user.app_metadata

        if not has_paid_subscription(metadata):
            raise StatusError(
                400, f"Cannot cancel subscription for {user.email} as there's no subscription id set"
            )
        subscription_id = metadata["subscription_id"]

        status = metadata.get("subscription_status")
        if status not in ("active", "past_due"):
            raise StatusError(400, f"Cannot cancel {status} subscription for user {user.email}")

        provider = metadata.get("payment_provider")
        if provider == "manual":
            raise StatusError(
                400, f"To cancel this manually managed subscription please contact {self._billing_email}"
            )

        logger.info(f"Cancelling {provider or 'paddle'} subscription {subscription_id} for {user_id}")
        if provider in (None, "paddle"):
            await self._paddle.cancel_subscription(subscription_id)
        elif provider == "paypro":
            await self._paypro.cancel_subscription(subscription_id)
        else:
            raise StatusError(400, f"Cannot cancel subscription with unknown provider {provider}")

    async def update_team_size(self, user_id: str, new_team_size: int | None) -> None:
        owner = await self._users.get_user(user_id)
        owner_data = owner.app_metadata

        if not owns_team_subscription(owner_data):
            raise NoTeamSubscriptionError()
        if not is_subscription_active(owner_data, now_ms()):
            raise NoTeamSubscriptionError("Your account does not have an active subscription")

        provider = owner_data.get("payment_provider")
        if provider == "manual":
            raise StatusError(
                400, f"Cannot update manually managed subscription. Please contact {self._billing_email}"
            )
        if provider != "paddle":
            raise StatusError(400, "Cannot update non-Paddle team subscription")

        if new_team_size is None:
            raise StatusError(400, "No subscription quantity specified")
        if new_team_size < 1:
            raise StatusError(400, "Cannot reduce subscription below 1 license")
        if new_team_size == owner_data.get("subscription_quantity"):
            raise StatusError(400, "Cannot update subscription to the same number of licenses")

        assigned_licenses = len(owner_data.get("team_member_ids") or [])
        if new_team_size < assigned_licenses:
            raise TeamConflictError("Cannot downgrade subscription below the number of assigned licenses")

        logger.info(f"For team {user_id}: update quantity to {new_team_size}")

        # Upgrades are prorated and billed now, downgrades wait for the next bill
        upgrade = new_team_size > (owner_data.get("subscription_quantity") or 0)
        try:
            await self._paddle.update_subscription_quantity(
                owner_data["subscription_id"],
                new_team_size,
                prorate=upgrade,
                bill_immediately=upgrade,
            )
        except AccountsError as e:
            report_error(e, operation="updating team size")
            raise SubscriptionUpdateError(f"Subscription update failed: {e.message}")

        await self._wait_for_quantity(user_id, new_team_size)

    async def _wait_for_quantity(self, user_id: str, quantity: int) -> None:
        """Poll until the provider's webhook has applied the new quantity."""
        deadline = time.monotonic() + self._poll_timeout
        while time.monotonic() < deadline:
            owner = await self._users.get_user(user_id)
            if owner.app_metadata.get("subscription_quantity") == quantity:
                return
            await asyncio.sleep(self._poll_interval)

        # The provider may still have applied it; we just can't confirm it
        report_error(f"Payment completed for team size update but no update applied for team {user_id}")
        raise SubscriptionUpdateError("No subscription update received from Paddle before timeout")

    async def update_team(self, user_id: str, ids_to_remove: list[str], emails_to_add: list[str]) -> None:
        owner, members = await asyncio.gather(
            self._users.get_user(user_id),
            self._users.get_team_members(user_id),
        )
        owner_data = owner.app_metadata

        if not owns_team_subscription(owner_data):
            raise NoTeamSubscriptionError()

        emails_to_add = [email.lower() for email in emails_to_add]
        team_member_ids = owner_data.get("team_member_ids") or []
        at_ms = now_ms()

        logger.info(
            f"For team {user_id}: add {', '.join(emails_to_add) or 'nobody'} "
            f"and remove {', '.join(ids_to_remove) or 'nobody'}"
        )

        # Members added and removed within the lock window lock their license,
        # so one license can't be passed around between many people
        licenses_to_lock = [
            member.app_metadata["joined_team_at"]
            for member in members
            if member.user_id in ids_to_remove
            and member.app_metadata.get("joined_team_at")
            and is_lock_active(member.app_metadata["joined_team_at"], at_ms)
        ]

        max_team_size = get_max_team_size(owner_data, at_ms) - len(licenses_to_lock)
        new_team_size = len(team_member_ids) + len(emails_to_add) - len(ids_to_remove)
        if new_team_size > max_team_size:
            raise NoTeamSubscriptionError("The proposed team would use more licenses than you have available")

        _validate_removals(team_member_ids, members, ids_to_remove)
        _validate_new_member_emails(members, emails_to_add)

        new_members = await asyncio.gather(*(self._find_user(email) for email in emails_to_add))
        for user in new_members:
            if user is not None:
                _check_user_can_join_team(user_id, user, at_ms)

        await self._unlink_members(ids_to_remove)
        new_member_ids = await self._link_members(user_id, emails_to_add, new_members, at_ms)

        updated_locks = [
            lock
            for lock in (owner_data.get("locked_licenses") or []) + licenses_to_lock
            if is_lock_active(lock, at_ms)
        ]
        await self._users.update_user_metadata(
            user_id,
            {
                "team_member_ids": [m for m in team_member_ids if m not in ids_to_remove] + new_member_ids,
                "locked_licenses": updated_locks,
            },
        )

    async def _find_user(self, email: str) -> Optional[User]:
        users = await self._users.get_users_by_email(email)
        if len(users) > 1:
            raise DuplicateUserError(email, len(users))
        return users[0] if users else None

    async def _unlink_members(self, ids_to_remove: list[str]) -> None:
        results = await asyncio.gather(
            *(
                self._users.update_user_metadata(member_id, {"subscription_owner_id": None, "joined_team_at": None})
                for member_id in ids_to_remove
            ),
            return_exceptions=True,
        )
        _raise_first_failure(results, f"removing {len(ids_to_remove)} team members")

    async def _link_members(
        self,
        owner_id: str,
        emails: list[str],
        existing: list[Optional[User]],
        at_ms: int,
    ) -> list[str]:
        membership = {"subscription_owner_id": owner_id, "joined_team_at": at_ms}

        async def link(email: str, user: Optional[User]) -> str:
            if user is not None:
                await self._users.update_user_metadata(user.user_id, membership)
                return user.user_id
            return (await self._users.create_user(email, dict(membership))).user_id

        results = await asyncio.gather(
            *(link(email, user) for email, user in zip(emails, existing)),
            return_exceptions=True,
        )
        _raise_first_failure(results, f"adding {len(emails)} team members")
        return list(results)


def _raise_first_failure(results: list[Any], description: str) -> None:
    errors = [result for result in results if isinstance(result, BaseException)]
    if not errors:
        return

    logger.error(f"{len(errors)} errors {description}")
    for error in errors:
        report_error(error, operation=description)
    raise errors[0]


def _validate_removals(team_member_ids: list[str], members: list[User], ids_to_remove: list[str]) -> None:
    if len(set(ids_to_remove)) != len(ids_to_remove):
        raise StatusError(400, "Cannot remove a team member more than once")

    # Membership as recorded on the members themselves
    member_ids = {member.user_id for member in members}
    if any(member_id not in member_ids for member_id in ids_to_remove):
        raise TeamConflictError("Cannot remove a team member who is not registered as a member of the team")

    # Membership as recorded on the owner
    if any(member_id not in team_member_ids for member_id in ids_to_remove):
        raise TeamConflictError("Cannot remove a team member who is not listed as a member of the team")


def _validate_new_member_emails(members: list[User], emails_to_add: list[str]) -> None:
    if len(set(emails_to_add)) != len(emails_to_add):
        raise StatusError(400, "Cannot add a team member more than once")

    existing_emails = {member.email.lower() for member in members}
    if any(email in existing_emails for email in emails_to_add):
        raise TeamConflictError("Cannot add team member who is already present")


def _check_user_can_join_team(owner_id: str, user: User, at_ms: int) -> None:
    metadata = user.app_metadata

    if get_team_owner_id(metadata):
        raise TeamConflictError("Cannot add a user to a team if they already have a team")

    if classify_metadata(metadata) is MetadataKind.BASE:
        return

    # Cancelled subscribers can join straight away
    if metadata.get("subscription_status") == "deleted":
        return

    # Owners can't use their own team subscription unless they join it
    if user.user_id == owner_id:
        return

    if (metadata.get("subscription_expiry") or 0) + SUBSCRIPTION_EXPIRY_MARGIN_MS > at_ms:
        raise TeamConflictError("Cannot add a user to a team if they have an active subscription")
