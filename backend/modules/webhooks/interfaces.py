"""
Webhook module interface.
"""

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class IWebhookService(Protocol):
    """
    Interface for inbound payment provider webhooks.

    Both handlers validate the signature before anything else, and return
    normally for events they don't act on.
    """

    async def handle_paddle_webhook(self, fields: Mapping[str, Any]) -> None:
        """
        Apply a Paddle webhook to the affected user.

        Args:
            fields: The posted form fields, including p_signature

        Raises:
            SignatureInvalid: If the signature doesn't verify
            MalformedWebhookError: If required fields are missing or unparseable
            UnknownSkuError: If the event is for a product we don't sell
        """
        ...

    async def handle_paypro_webhook(self, fields: Mapping[str, Any]) -> None:
        """
        Apply a PayPro IPN to the affected user.

        Args:
            fields: The posted form fields, including SIGNATURE

        Raises:
            SignatureInvalid: If the signature doesn't match
            MalformedWebhookError: If required fields are missing or unparseable
            UnknownSkuError: If the event is for a product we don't sell
        """
        ...
