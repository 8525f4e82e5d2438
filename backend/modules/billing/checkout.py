"""
Provider checkout URL construction.

PayPro checkouts take their price override as an encrypted product-data
parameter, so buyers can't edit the price in the URL. Paddle checkouts are
pay links generated through the vendor API.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from modules.pricing.exchange_rates import ExchangeRateService
from shared.reporting import report_error

from .exceptions import CheckoutError
from .models import CheckoutOptions
from .paddle_client import PaddleClient
from .products import PADDLE_PLAN_IDS, SKU_TO_PAYPRO_ID

logger = logging.getLogger(__name__)

# Currencies PayPro checkouts can bill in
PAYPRO_CURRENCIES = frozenset(
    """
    AFN DZD AED ARS AMD AUD AZN BSD BHD BDT BBD BYN BZD BMD BOB BWP BRL GBP BND
    BGN CAD CVE KYD XOF CLP COP CRC HRK CZK DKK DJF DOP XCD EGP EUR FJD GEL GTQ
    HNL HKD HUF ISK INR IDR ILS JOD KHR KZT KES BAM KRW KWD KGS LAK LBP MOP MKD
    MYR MVR MXN MDL MNT MAD NAD TRY NZD NGN NOK OMR PKR PAB PGK PYG PEN PHP PLN
    QAR RON RUB SAR RSD SGD ZAR LKR SEK CHF TWD TZS THB TMT TTD TND TJS UAH USD
    UYU UZS YER CNY JPY
    """.split()
)


@dataclass(frozen=True)
class PayProCheckoutConfig:
    """Store URL and product-data encryption parameters."""

    base_url: str
    param_key: str
    param_iv: str


def encrypt_product_params(params: str, key: str, iv: str) -> str:
    """
    Encrypt URL-encoded product params the way PayPro expects.

    AES-CBC with PKCS7 padding, base64-encoded. Key and IV are used as raw
    bytes of the configured strings.
    """
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(params.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key.encode("utf-8")), modes.CBC(iv.encode("utf-8"))).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(ciphertext).decode("ascii")


def decrypt_product_params(data: str, key: str, iv: str) -> str:
    """Inverse of encrypt_product_params, for checking generated URLs."""
    decryptor = Cipher(algorithms.AES(key.encode("utf-8")), modes.CBC(iv.encode("utf-8"))).decryptor()
    padded = decryptor.update(base64.b64decode(data)) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")


async def build_paypro_checkout_url(
    options: CheckoutOptions,
    config: PayProCheckoutConfig,
    exchange_rates: ExchangeRateService,
) -> str:
    """
    Build a PayPro checkout URL with an encrypted price override.

    Raises:
        CheckoutError: For discount codes, SKUs PayPro doesn't sell, or
            unsupported currencies with no USD rate available
    """
    if options.discount_code:
        raise CheckoutError("Discount codes are not supported by PayPro checkouts", options.sku)

    product_id = SKU_TO_PAYPRO_ID.get(options.sku)
    if product_id is None:
        raise CheckoutError(f"SKU {options.sku} is not available via PayPro", options.sku)

    checkout_params: dict[str, str] = {"currency": options.currency}
    if options.email:
        checkout_params["billing-email"] = options.email
    if options.country_code:
        checkout_params["billing-country"] = options.country_code
    if options.source:
        checkout_params["x-source"] = options.source
    if options.passthrough:
        checkout_params["x-passthrough"] = options.passthrough
    if options.return_url:
        checkout_params["x-return-url"] = options.return_url

    if options.currency in PAYPRO_CURRENCIES:
        product_params = {f"price[{options.currency}][Amount]": _format_amount(options.price)}
    else:
        # Shouldn't happen normally, but it's not worth failing the checkout over
        report_error(f"Opening unsupported {options.currency} PayPro checkout")

        usd_rates = await exchange_rates.get_rates("USD")
        usd_rate = usd_rates.get(options.currency)
        if not usd_rate:
            raise CheckoutError(
                f"Can't show PayPro checkout for currency {options.currency} "
                "with no USD rate available",
                options.sku,
                status=500,
            )
        product_params = {"price[USD][Amount]": _format_amount(round(options.price / usd_rate, 2))}

    checkout_params["products[1][id]"] = str(product_id)
    if options.quantity:
        checkout_params["products[1][qty]"] = str(options.quantity)
    checkout_params["products[1][data]"] = encrypt_product_params(
        urlencode(product_params), config.param_key, config.param_iv
    )

    return f"{config.base_url.rstrip('/')}/checkout?{urlencode(checkout_params)}"


async def build_paddle_checkout_url(options: CheckoutOptions, paddle: PaddleClient) -> str:
    """Build a Paddle pay link for the SKU at the regional price."""
    product_id = PADDLE_PLAN_IDS.get(options.sku)
    if product_id is None:
        raise CheckoutError(f"SKU {options.sku} is not available via Paddle", options.sku)

    return await paddle.generate_pay_link(
        product_id=product_id,
        currency=options.currency,
        price=options.price,
        email=options.email,
        quantity=options.quantity,
        passthrough=options.passthrough,
        return_url=options.return_url,
        discount_code=options.discount_code,
    )


def _format_amount(amount: float) -> str:
    """Whole amounts without a trailing .0, fractional ones as-is."""
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)
