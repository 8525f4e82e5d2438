"""
Webhook service.

Validates provider webhooks, computes the subscription patch, and applies
it to the user record with a read-modify-write. Once a webhook has been
validated and parsed, failures writing it are reported rather than raised:
the provider must still get a 200, or it will redeliver forever.
"""

import logging
from typing import Any, Awaitable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from modules.billing.exceptions import UnknownSkuError
from modules.billing.products import get_sku, is_pro_subscription, is_team_subscription
from modules.users.exceptions import UserNotFoundError
from modules.users.interfaces import IUserService
from modules.users.models import get_team_owner_id, is_subscription_active, now_ms
from shared.exceptions import AccountsError, DataInconsistencyError, StatusError
from shared.reporting import report_error

from .exceptions import MalformedWebhookError
from .interfaces import IWebhookService
from .models import PaddleWebhookEvent, PayProWebhookEvent
from .signatures import validate_paddle_webhook, validate_paypro_webhook
from .state_machine import (
    drop_unset,
    is_handled_paddle_event,
    is_handled_paypro_event,
    is_paddle_dispute,
    is_paypro_chargeback,
    paddle_event_patch,
    parse_paypro_custom_fields,
    paypro_chargeback_patch,
    paypro_event_patch,
    team_owner_patch,
)

logger = logging.getLogger(__name__)

EventT = TypeVar("EventT", bound=BaseModel)


class WebhookService(IWebhookService):
    """Applies Paddle and PayPro subscription events to user records."""

    def __init__(
        self,
        users: IUserService,
        paddle_public_key: str,
        paypro_validation_key: str,
    ):
        self._users = users
        self._paddle_public_key = paddle_public_key
        self._paypro_validation_key = paypro_validation_key

    async def handle_paddle_webhook(self, fields: Mapping[str, Any]) -> None:
        validate_paddle_webhook(fields, self._paddle_public_key)
        event = _parse_event(PaddleWebhookEvent, fields)
        logger.info(f"Received Paddle {event.alert_name} webhook")

        if is_handled_paddle_event(event.alert_name):
            # Paddle keeps email casing, the identity store doesn't
            email = _require_email(event.email)
            try:
                patch = paddle_event_patch(event)
            except ValueError as e:
                raise MalformedWebhookError(f"Unparseable Paddle webhook: {e}")
            await self._apply_subscription_patch(email, patch)
        elif is_paddle_dispute(event.alert_name):
            # Disputes are either stolen cards or refusing a valid payment
            email = _require_email(event.email)
            await self._settle(f"banning {email}", self.update_user_by_email(email, {"banned": True}))
        else:
            logger.info(f"Ignoring {event.alert_name} event")

    async def handle_paypro_webhook(self, fields: Mapping[str, Any]) -> None:
        validate_paypro_webhook(fields, self._paypro_validation_key)
        event = _parse_event(PayProWebhookEvent, fields)
        logger.info(f"Received PayPro {event.IPN_TYPE_NAME} IPN")

        custom_fields = parse_paypro_custom_fields(event.ORDER_CUSTOM_FIELDS)
        if custom_fields:
            logger.debug(f"PayPro custom fields: {custom_fields}")

        if is_paypro_chargeback(event.IPN_TYPE_NAME):
            email = _require_email(event.CUSTOMER_EMAIL)
            await self._settle(
                f"banning {email}",
                self.update_user_by_email(email, paypro_chargeback_patch(now_ms())),
            )
        elif is_handled_paypro_event(event.IPN_TYPE_NAME):
            email = _require_email(event.CUSTOMER_EMAIL)
            try:
                patch = paypro_event_patch(event)
            except ValueError as e:
                raise MalformedWebhookError(f"Unparseable PayPro IPN: {e}")
            await self._apply_subscription_patch(email, patch)
        else:
            logger.info(f"Ignoring {event.IPN_TYPE_NAME} event")

    async def _apply_subscription_patch(self, email: str, patch: dict[str, Any]) -> None:
        sku = get_sku(patch)

        if is_team_subscription(sku):
            logger.info(f"Updating team user {email}")
            await self._settle(f"updating team user {email}", self.update_team_data(email, patch))
        elif is_pro_subscription(sku):
            logger.info(f"Updating Pro user {email} to {patch}")
            await self._settle(f"updating Pro user {email}", self.update_pro_user_data(email, patch))
        else:
            raise UnknownSkuError(patch.get("subscription_sku"), patch.get("subscription_plan_id"))

    async def _settle(self, description: str, operation: Awaitable[None]) -> None:
        """Await a downstream write, reporting instead of raising on failure."""
        try:
            await operation
        except AccountsError as e:
            logger.error(f"Failed {description} from webhook: {e}")
            report_error(e, operation=description)

    async def update_user_by_email(self, email: str, patch: dict[str, Any]) -> None:
        user = await self._users.get_or_create_user(email)
        await self._users.update_user_metadata(user.user_id, patch)

    async def update_pro_user_data(self, email: str, patch: dict[str, Any]) -> None:
        """
        Apply a Pro subscription patch.

        If the user is still linked to a team, the link is removed on both
        sides, unless that team is still active.

        Raises:
            StatusError: 409 if the user is a member of an active team
        """
        patch = drop_unset(patch)
        user = await self._users.get_or_create_user(email)
        owner_id = get_team_owner_id(user.app_metadata)

        if owner_id:
            await self._leave_team(user.user_id, email, owner_id)
            # None deletes the field
            patch["subscription_owner_id"] = None

        if patch:
            await self._users.update_user_metadata(user.user_id, patch)

    async def _leave_team(self, user_id: str, email: str, owner_id: str) -> None:
        try:
            owner = await self._users.get_user(owner_id)
        except UserNotFoundError:
            report_error(
                DataInconsistencyError(f"User {user_id} linked to missing team owner {owner_id}")
            )
            return

        owner_data = owner.app_metadata
        if is_subscription_active(owner_data, now_ms()):
            report_error(f"Rejected Pro signup for {email} because they're an active Team member")
            raise StatusError(409, "Cannot create Pro account for a member of an active team")

        # The team subscription has ended, so the membership just needs unlinking
        remaining = [member for member in owner_data.get("team_member_ids") or [] if member != user_id]
        await self._users.update_user_metadata(owner_id, {"team_member_ids": remaining})

    async def update_team_data(self, email: str, patch: dict[str, Any], at_ms: Optional[int] = None) -> None:
        """Apply a team subscription patch to the team owner."""
        user = await self._users.get_or_create_user(email)
        owner_patch = team_owner_patch(user.app_metadata, patch, at_ms)

        if owner_patch:
            await self._users.update_user_metadata(user.user_id, owner_patch)


def _parse_event(model: type[EventT], fields: Mapping[str, Any]) -> EventT:
    try:
        return model.model_validate(dict(fields))
    except ValidationError as e:
        raise MalformedWebhookError(f"Invalid webhook body: {e.error_count()} invalid field(s)")


def _require_email(email: Optional[str]) -> str:
    if not email:
        raise MalformedWebhookError("Webhook has no customer email")
    return email.lower()
