"""
Pricing API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from api.dependencies import get_pricing_service
from api.middleware.client_ip import get_client_ip

from .interfaces import IPricingService
from .models import PricesResponse

router = APIRouter()


@router.get("/get-prices", response_model=PricesResponse)
async def get_prices(
    response: Response,
    client_ip: Optional[str] = Depends(get_client_ip),
    service: IPricingService = Depends(get_pricing_service),
) -> PricesResponse:
    """
    List product prices for the caller's region.

    Cached privately per client, so prices stay stable across page views.
    """
    prices = await service.get_product_prices(client_ip)
    response.headers["Cache-Control"] = "private, max-age=3600"
    return prices
