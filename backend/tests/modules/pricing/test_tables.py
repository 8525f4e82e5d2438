"""Sanity checks over the regional price tables."""

import pytest

from modules.billing.products import PRICED_SKUS
from modules.pricing.tables import DEFAULT_TABLE_KEY, PRICING


@pytest.mark.parametrize("key", sorted(PRICING))
class TestPriceTables:
    def test_prices_every_sku(self, key):
        """Every table should price every SKU sold through checkout."""
        table = PRICING[key]
        assert len(table.currency) == 3
        assert set(table.prices) == set(PRICED_SKUS)
        assert all(price > 0 for price in table.prices.values())

    def test_annual_discount(self, key):
        """Annual plans should cost between 7 and 11 months of the monthly plan."""
        prices = PRICING[key].prices
        assert 7 <= prices["pro-annual"] / prices["pro-monthly"] <= 11
        assert 7 <= prices["team-annual"] / prices["team-monthly"] <= 11

    def test_team_premium(self, key):
        """Team seats should cost 1.3 to 1.7 times a Pro subscription."""
        prices = PRICING[key].prices
        assert 1.3 <= prices["team-monthly"] / prices["pro-monthly"] <= 1.7


class TestKnownTables:
    def test_us_prices(self):
        assert PRICING["country:USA"].currency == "USD"
        assert PRICING["country:USA"].prices["pro-monthly"] == 14

    def test_uk_prices(self):
        assert PRICING["country:GBR"].currency == "GBP"
        assert PRICING["country:GBR"].prices["pro-annual"] == 60

    def test_default_is_usd(self):
        assert PRICING[DEFAULT_TABLE_KEY].currency == "USD"
