"""
Checkout API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from api.dependencies import get_checkout_service
from api.middleware.client_ip import get_client_ip

from .interfaces import ICheckoutService

router = APIRouter()


@router.get("/redirect-to-checkout", status_code=302)
async def redirect_to_checkout(
    request: Request,
    email: Optional[str] = Query(default=None, description="Buyer email, or '*'"),
    sku: Optional[str] = Query(default=None, description="Product SKU"),
    quantity: Optional[int] = Query(default=None, description="Seats, required for team SKUs"),
    source: Optional[str] = Query(default=None, description="Checkout origin"),
    return_url: Optional[str] = Query(default=None, alias="returnUrl"),
    passthrough: Optional[str] = Query(default=None, description="JSON passthrough data"),
    discount_code: Optional[str] = Query(default=None, alias="discountCode"),
    client_ip: Optional[str] = Depends(get_client_ip),
    service: ICheckoutService = Depends(get_checkout_service),
) -> RedirectResponse:
    """
    Redirect the buyer to the payment provider's checkout.

    Prices are picked for the buyer's region.
    """
    url = await service.get_checkout_url(
        email=email,
        sku=sku,
        quantity=quantity,
        source=source or request.headers.get("referring_domain"),
        client_ip=client_ip,
        return_url=return_url,
        passthrough=passthrough,
        discount_code=discount_code,
    )
    return RedirectResponse(url, status_code=302)
