"""
Pricing module data models.

These models define the data structures used by the pricing module
and exposed to other modules through the interface.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class IpLocation(BaseModel):
    """
    Where a client IP is, as reported by ip-api.com.

    Field aliases match the ip-api JSON field names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    country_code: str = Field(..., alias="countryCode", description="ISO 3166 alpha-2")
    country_code3: str = Field(..., alias="countryCode3", description="ISO 3166 alpha-3")
    continent_code: str = Field(..., alias="continentCode", description="Two-letter continent")
    currency: str = Field(..., description="Local ISO 4217 currency")
    proxy: bool = Field(default=False, description="Known proxy, VPN or Tor exit")
    hosting: bool = Field(default=False, description="Hosting provider or data center")


class PriceTable(BaseModel):
    """Net prices for every priced SKU in one currency."""

    model_config = ConfigDict(frozen=True)

    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency")
    prices: dict[str, float] = Field(..., description="SKU to net unit price")


class ResolvedPricing(BaseModel):
    """A price table together with the location it was resolved for."""

    model_config = ConfigDict(frozen=True)

    table: PriceTable
    location: Optional[IpLocation] = None


class NetPrice(BaseModel):
    net: float


class SubscriptionInterval(BaseModel):
    interval: str = Field(..., description="'month' or 'year'")


class ProductPrice(BaseModel):
    """One product entry of the price listing."""

    product_id: int = Field(..., description="Legacy Paddle plan id")
    sku: str
    product_title: str
    currency: str
    price: NetPrice
    subscription: SubscriptionInterval


class ProductPriceList(BaseModel):
    products: list[ProductPrice]


class PricesResponse(BaseModel):
    """Response body of the price listing endpoint."""

    success: bool = True
    response: ProductPriceList
