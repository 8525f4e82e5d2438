"""
Account API endpoints.

All endpoints act on the user identified by the bearer token.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from api.dependencies import get_accounts_service
from api.middleware.auth import get_current_user
from shared.models import AuthenticatedUser

from .interfaces import IAccountsService
from .models import SuccessResponse, UpdateTeamRequest, UpdateTeamSizeRequest

router = APIRouter()

# Briefly cacheable, to absorb duplicate requests from the same client
SHORT_PRIVATE_CACHE = {"Cache-Control": "private, max-age=10"}


@router.get("/get-app-data", response_class=PlainTextResponse)
async def get_app_data(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAccountsService = Depends(get_accounts_service),
) -> PlainTextResponse:
    """
    Get the user's effective subscription as a signed JWT.

    Apps refresh this on startup and periodically while running.
    """
    token = await service.get_app_data_token(user.id)
    return PlainTextResponse(token, headers=SHORT_PRIVATE_CACHE)


@router.get("/get-billing-data", response_class=PlainTextResponse)
async def get_billing_data(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAccountsService = Depends(get_accounts_service),
) -> PlainTextResponse:
    """Get the user's subscription, transactions and team as a signed JWT."""
    token = await service.get_billing_data_token(user.id)
    return PlainTextResponse(token, headers=SHORT_PRIVATE_CACHE)


@router.post("/cancel-subscription", response_model=SuccessResponse)
async def cancel_subscription(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAccountsService = Depends(get_accounts_service),
) -> SuccessResponse:
    """Cancel the user's subscription with their payment provider."""
    await service.cancel_subscription(user.id)
    return SuccessResponse()


@router.post("/update-team-size", response_model=SuccessResponse)
async def update_team_size(
    request: UpdateTeamSizeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAccountsService = Depends(get_accounts_service),
) -> SuccessResponse:
    """
    Change the seat count of the user's team subscription.

    Upgrades are billed immediately. Returns once the provider has
    confirmed the change.
    """
    await service.update_team_size(user.id, request.new_team_size)
    return SuccessResponse()


@router.post("/update-team", response_model=SuccessResponse)
async def update_team(
    request: UpdateTeamRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAccountsService = Depends(get_accounts_service),
) -> SuccessResponse:
    """Add and remove members of the user's team."""
    await service.update_team(user.id, request.ids_to_remove, [str(e) for e in request.emails_to_add])
    return SuccessResponse()
