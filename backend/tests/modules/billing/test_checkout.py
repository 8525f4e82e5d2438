"""Tests for checkout URL construction."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

from modules.billing.checkout import (
    PayProCheckoutConfig,
    build_paddle_checkout_url,
    build_paypro_checkout_url,
    decrypt_product_params,
    encrypt_product_params,
)
from modules.billing.exceptions import CheckoutError
from modules.billing.models import CheckoutOptions

KEY = "0123456789abcdef0123456789abcdef"
IV = "fedcba9876543210"


@pytest.fixture
def config() -> PayProCheckoutConfig:
    return PayProCheckoutConfig(base_url="https://store.example.com/", param_key=KEY, param_iv=IV)


@pytest.fixture
def exchange_rates():
    rates = MagicMock()
    rates.get_rates = AsyncMock(return_value={"XOF": 600.0})
    return rates


def _options(**overrides) -> CheckoutOptions:
    values = {
        "sku": "pro-annual",
        "email": "buyer@example.com",
        "currency": "EUR",
        "price": 72,
        "country_code": "DE",
        "source": "pricing-page",
        "passthrough": '{"id": "abc"}',
    }
    values.update(overrides)
    return CheckoutOptions(**values)


def _query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


class TestProductParamEncryption:
    def test_round_trip(self):
        """Encrypted params should decrypt with the same key and IV."""
        params = "price%5BEUR%5D%5BAmount%5D=72"
        encrypted = encrypt_product_params(params, KEY, IV)

        assert encrypted != params
        assert decrypt_product_params(encrypted, KEY, IV) == params

    def test_deterministic(self):
        """The same params, key and IV always give the same ciphertext."""
        assert encrypt_product_params("a=1", KEY, IV) == encrypt_product_params("a=1", KEY, IV)


class TestPayProCheckout:
    @pytest.mark.asyncio
    async def test_builds_url_with_encrypted_price(self, config, exchange_rates):
        """The price override should only be readable after decryption."""
        url = await build_paypro_checkout_url(_options(), config, exchange_rates)

        assert url.startswith("https://store.example.com/checkout?")
        query = _query(url)
        assert query["currency"] == "EUR"
        assert query["billing-email"] == "buyer@example.com"
        assert query["billing-country"] == "DE"
        assert query["x-source"] == "pricing-page"
        assert query["x-passthrough"] == '{"id": "abc"}'
        assert query["products[1][id]"] == "82586"
        assert "products[1][qty]" not in query

        product_data = decrypt_product_params(query["products[1][data]"], KEY, IV)
        assert parse_qs(product_data) == {"price[EUR][Amount]": ["72"]}
        exchange_rates.get_rates.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_team_quantity(self, config, exchange_rates):
        url = await build_paypro_checkout_url(
            _options(sku="team-monthly", quantity=5, price=12.5), config, exchange_rates
        )

        query = _query(url)
        assert query["products[1][id]"] == "82588"
        assert query["products[1][qty]"] == "5"
        product_data = decrypt_product_params(query["products[1][data]"], KEY, IV)
        assert parse_qs(product_data) == {"price[EUR][Amount]": ["12.5"]}

    @pytest.mark.asyncio
    async def test_unsupported_currency_is_converted_to_usd(self, config, exchange_rates):
        """Currencies PayPro can't bill in fall back to USD, and are reported."""
        exchange_rates.get_rates.return_value = {"XYZ": 600.0}

        with patch("modules.billing.checkout.report_error") as report:
            url = await build_paypro_checkout_url(
                _options(currency="XYZ", price=1200), config, exchange_rates
            )

        report.assert_called_once()
        exchange_rates.get_rates.assert_awaited_once_with("USD")
        product_data = decrypt_product_params(_query(url)["products[1][data]"], KEY, IV)
        assert parse_qs(product_data) == {"price[USD][Amount]": ["2"]}

    @pytest.mark.asyncio
    async def test_unsupported_currency_without_rate(self, config, exchange_rates):
        with patch("modules.billing.checkout.report_error"):
            with pytest.raises(CheckoutError) as exc_info:
                await build_paypro_checkout_url(_options(currency="XYZ"), config, exchange_rates)
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_discount_codes_rejected(self, config, exchange_rates):
        """PayPro checkouts can't apply discount codes."""
        with pytest.raises(CheckoutError) as exc_info:
            await build_paypro_checkout_url(_options(discount_code="SAVE10"), config, exchange_rates)
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_sku_not_sold_via_paypro(self, config, exchange_rates):
        with pytest.raises(CheckoutError, match="not available via PayPro"):
            await build_paypro_checkout_url(_options(sku="pro-perpetual"), config, exchange_rates)


class TestPaddleCheckout:
    @pytest.mark.asyncio
    async def test_generates_pay_link(self):
        """Paddle checkouts are pay links for the SKU's plan at the regional price."""
        paddle = MagicMock()
        paddle.generate_pay_link = AsyncMock(return_value="https://pay.example.com/1")

        url = await build_paddle_checkout_url(_options(discount_code="SAVE10"), paddle)

        assert url == "https://pay.example.com/1"
        kwargs = paddle.generate_pay_link.call_args.kwargs
        assert kwargs["product_id"] == 550382
        assert kwargs["currency"] == "EUR"
        assert kwargs["price"] == 72
        assert kwargs["discount_code"] == "SAVE10"
