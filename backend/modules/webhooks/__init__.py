"""
Webhooks module.

Turns validated payment provider webhooks into subscription state.

Public API:
- IWebhookService: Interface for webhook handling
- Signature validators for Paddle and PayPro
- State rules: pure functions from provider events to metadata patches
- Webhook exceptions: SignatureInvalid, MalformedWebhookError
"""

from .interfaces import IWebhookService
from .models import (
    PaddleAlert,
    PayProIpnType,
    PaddleWebhookEvent,
    PayProWebhookEvent,
)
from .signatures import validate_paddle_webhook, validate_paypro_webhook
from .state_machine import (
    drop_unset,
    paddle_event_patch,
    paypro_event_patch,
    paypro_chargeback_patch,
    team_owner_patch,
    parse_paypro_custom_fields,
)
from .exceptions import SignatureInvalid, MalformedWebhookError

__all__ = [
    # Interface
    "IWebhookService",
    # Models
    "PaddleAlert",
    "PayProIpnType",
    "PaddleWebhookEvent",
    "PayProWebhookEvent",
    # Validation
    "validate_paddle_webhook",
    "validate_paypro_webhook",
    # State rules
    "drop_unset",
    "paddle_event_patch",
    "paypro_event_patch",
    "paypro_chargeback_patch",
    "team_owner_patch",
    "parse_paypro_custom_fields",
    # Exceptions
    "SignatureInvalid",
    "MalformedWebhookError",
]
