"""
Regional price tables.

Prices aim to track local purchasing power, within a few constraints: no
price discrimination inside the EU, and no individual transaction so small
that fixed processing fees eat it. Tables are matched in order: country,
then continent, then currency, then default.
"""

from .models import PriceTable


def _table(currency: str, pro_monthly: float, pro_annual: float, team_monthly: float, team_annual: float) -> PriceTable:
    return PriceTable(
        currency=currency,
        prices={
            "pro-monthly": pro_monthly,
            "pro-annual": pro_annual,
            "team-monthly": team_monthly,
            "team-annual": team_annual,
        },
    )


DEFAULT_TABLE_KEY = "default"

PRICING: dict[str, PriceTable] = {
    # Round-number pricing for the most common countries
    "country:ARE": _table("AED", 25, 216, 36, 324),
    "country:AUS": _table("AUD", 14, 120, 22, 192),
    "country:BRA": _table("BRL", 24, 192, 36, 300),
    "country:CAN": _table("CAD", 12, 108, 20, 180),
    "country:CHE": _table("CHF", 8, 72, 12, 108),
    "country:CHN": _table("CNY", 38, 312, 58, 504),
    "country:CZE": _table("CZK", 200, 1752, 300, 2700),
    "country:DNK": _table("DKK", 60, 528, 90, 792),
    "country:GBR": _table("GBP", 7, 60, 11, 96),
    "country:HKG": _table("HKD", 55, 480, 85, 756),
    "country:IDN": _table("IDR", 45000, 360000, 65000, 528000),
    "country:IND": _table("INR", 200, 1440, 284, 2400),
    "country:ISR": _table("ILS", 48, 408, 72, 624),
    "country:JPN": _table("JPY", 1000, 8400, 1400, 13200),
    "country:KOR": _table("KRW", 9000, 84000, 14000, 132000),
    "country:MEX": _table("MXN", 90, 720, 128, 1032),
    "country:RUS": _table("RUB", 400, 3600, 600, 5400),
    "country:SGP": _table("SGD", 10, 84, 14, 132),
    "country:SWE": _table("SEK", 92, 780, 138, 1224),
    "country:TUR": _table("TRY", 150, 1224, 210, 1728),
    "country:TWN": _table("TWD", 150, 1320, 225, 2016),
    "country:UKR": _table("UAH", 180, 1512, 260, 2256),
    "country:USA": _table("USD", 14, 120, 22, 204),
    # Regional pricing for everywhere else. Checkouts may still show a local currency.
    "continent:EU": _table("EUR", 8, 72, 12, 108),
    "continent:AF": _table("USD", 3, 24, 5, 36),
    "continent:AS": _table("USD", 4, 30, 6, 48),
    "continent:NA": _table("USD", 5, 36, 7, 60),  # Excluding US & Canada
    "continent:SA": _table("USD", 5, 36, 7, 60),
    "continent:OC": _table("USD", 5, 36, 7, 60),
    # Used when nothing else matches, and for proxy/hosting traffic
    DEFAULT_TABLE_KEY: _table("USD", 7, 60, 11, 96),
}
