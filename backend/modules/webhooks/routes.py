"""
Payment provider webhook endpoints.

Providers only look at the status code, so responses are plain text.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from api.dependencies import get_webhook_service
from shared.exceptions import StatusError

from .interfaces import IWebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/paddle-webhook", response_class=PlainTextResponse)
async def paddle_webhook(
    request: Request,
    service: IWebhookService = Depends(get_webhook_service),
) -> PlainTextResponse:
    """Receive a Paddle subscription alert."""
    fields = dict(await request.form())
    try:
        await service.handle_paddle_webhook(fields)
    except StatusError as e:
        logger.warning(f"Rejected Paddle webhook: {e.message}")
        return PlainTextResponse(e.message, status_code=e.status)
    return PlainTextResponse("")


@router.post("/paypro-webhook", response_class=PlainTextResponse)
async def paypro_webhook(
    request: Request,
    service: IWebhookService = Depends(get_webhook_service),
) -> PlainTextResponse:
    """Receive a PayPro IPN."""
    fields = dict(await request.form())
    try:
        await service.handle_paypro_webhook(fields)
    except StatusError as e:
        logger.warning(f"Rejected PayPro webhook: {e.message}")
        return PlainTextResponse(e.message, status_code=e.status)
    return PlainTextResponse("")
