# app/core/razorpay_client.py
"""
Razorpay adapter.

Responsibilities:
  - Create a gateway order ("intent") through the Razorpay REST API.
  - Verify checkout signatures: HMAC-SHA256(key_secret, "<order_id>|<payment_id>").
  - Verify webhook signatures: HMAC-SHA256(webhook_secret, raw_body).

Signatures are compared in constant time. A missing secret never verifies.
"""
import hashlib
import hmac
import logging
from typing import Any

import requests

from app.core.config import get_settings
from app.core.errors import PaymentGatewayUnavailable, PaymentVerificationFailed

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET)


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


def create_intent(amount: float, receipt: str, notes: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create a Razorpay order for `amount` rupees.

    Returns:
        {"id", "amount" (paise), "currency", "receipt"} as sent back by Razorpay.

    Raises:
        PaymentGatewayUnavailable(503): keys missing, network error or non-2xx.
    """
    settings = get_settings()
    if not is_configured():
        raise PaymentGatewayUnavailable()

    body = {
        "amount": to_paise(amount),
        "currency": settings.PAYMENT_CURRENCY,
        "receipt": receipt,
        "notes": notes or {},
    }

    try:
        resp = requests.post(
            f"{settings.RAZORPAY_API_URL}/orders",
            json=body,
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        logger.error("Razorpay order creation failed: %s", exc)
        raise PaymentGatewayUnavailable("Payment gateway unreachable")

    if resp.status_code >= 300:
        logger.error(
            "Razorpay order creation rejected (%s): %s", resp.status_code, resp.text
        )
        raise PaymentGatewayUnavailable("Payment gateway rejected the request")

    data = resp.json()
    return {
        "id": data["id"],
        "amount": data.get("amount", body["amount"]),
        "currency": data.get("currency", body["currency"]),
        "receipt": data.get("receipt", receipt),
    }


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _same_digest(expected_hex: str, supplied: str) -> bool:
    # Bytes, not str: compare_digest refuses non-ASCII strings
    return hmac.compare_digest(expected_hex.encode("ascii"), supplied.encode("utf-8", "replace"))


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    secret = get_settings().RAZORPAY_KEY_SECRET
    if not (secret and order_id and payment_id and signature):
        return False
    expected = _hmac_hex(secret, f"{order_id}|{payment_id}".encode("utf-8"))
    return _same_digest(expected, signature)


def ensure_valid_payment_signature(order_id: str, payment_id: str, signature: str) -> None:
    """
    Raises:
        PaymentVerificationFailed(400): on any mismatch.
    """
    if not verify_payment_signature(order_id, payment_id, signature):
        logger.warning("Rejected payment signature for gateway order %s", order_id)
        raise PaymentVerificationFailed()


def verify_webhook_signature(raw_body: bytes, signature: str | None) -> bool:
    secret = get_settings().RAZORPAY_WEBHOOK_SECRET
    if not (secret and signature):
        return False
    return _same_digest(_hmac_hex(secret, raw_body), signature)
