"""
Webhook signature validation.

Paddle signs a PHP serialization of the sorted webhook fields with RSA-SHA1.
PayPro sends a SHA256 hash over a fixed set of IPN fields plus a shared key.
Both validators are pure and raise SignatureInvalid on any failure.
"""

import base64
import binascii
import hashlib
import hmac
import json
from typing import Any, Mapping

import phpserialize
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

from .exceptions import SignatureInvalid

PADDLE_SIGNATURE_FIELD = "p_signature"
PAYPRO_SIGNATURE_FIELD = "SIGNATURE"

# IPN fields hashed by PayPro, in order; the key goes between email and test mode
PAYPRO_SIGNED_FIELDS_BEFORE_KEY = ("ORDER_ID", "ORDER_STATUS", "ORDER_TOTAL_AMOUNT", "CUSTOMER_EMAIL")
PAYPRO_SIGNED_FIELDS_AFTER_KEY = ("TEST_MODE", "IPN_TYPE_NAME")


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return json.dumps(value, separators=(",", ":"))


def paddle_signed_payload(fields: Mapping[str, Any]) -> bytes:
    """
    Build the byte string Paddle signs for a webhook.

    Args:
        fields: All webhook fields; the signature field is ignored if present

    Returns:
        PHP-serialized sorted fields, as UTF-8 bytes
    """
    signed = {
        key: _stringify(fields[key])
        for key in sorted(fields)
        if key != PADDLE_SIGNATURE_FIELD
    }
    return phpserialize.dumps(signed, charset="utf-8")


def validate_paddle_webhook(fields: Mapping[str, Any], public_key_pem: str) -> None:
    """
    Check a Paddle webhook's p_signature.

    Args:
        fields: Webhook form fields, including p_signature
        public_key_pem: Paddle's public key, PEM encoded

    Raises:
        SignatureInvalid: If the signature is missing, undecodable, or wrong
    """
    encoded = fields.get(PADDLE_SIGNATURE_FIELD)
    if not encoded or not isinstance(encoded, str):
        raise SignatureInvalid("Paddle webhook has no signature", provider="paddle")

    try:
        signature = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise SignatureInvalid("Paddle webhook signature is not valid base64", provider="paddle")

    public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    try:
        public_key.verify(signature, paddle_signed_payload(fields), padding.PKCS1v15(), hashes.SHA1())
    except InvalidSignature:
        raise SignatureInvalid("Paddle webhook signature was invalid", provider="paddle")


def paypro_signature(fields: Mapping[str, Any], validation_key: str) -> str:
    """Compute the hex SHA256 signature PayPro should have sent."""
    parts = [str(fields.get(name, "")) for name in PAYPRO_SIGNED_FIELDS_BEFORE_KEY]
    parts.append(validation_key)
    parts.extend(str(fields.get(name, "")) for name in PAYPRO_SIGNED_FIELDS_AFTER_KEY)
    return hashlib.sha256("".join(parts).encode("utf-8")).hexdigest()


def validate_paypro_webhook(fields: Mapping[str, Any], validation_key: str) -> None:
    """
    Check a PayPro IPN's SIGNATURE field.

    Args:
        fields: IPN form fields
        validation_key: Shared IPN validation key

    Raises:
        SignatureInvalid: If the signature doesn't match exactly
    """
    expected = paypro_signature(fields, validation_key)
    received = str(fields.get(PAYPRO_SIGNATURE_FIELD, ""))

    if not hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8")):
        raise SignatureInvalid(
            f"PayPro IPN signature did not match - expected {expected} but received {received}",
            provider="paypro",
        )
