# app/core/sms_client.py
"""
Fast2SMS client (SMS + WhatsApp).

When FAST2SMS_API_KEY is not set the message is only logged, so local
development and tests never hit the network.
"""
import logging
import re

import requests

from app.core.config import get_settings

logger = logging.getLogger(__name__)


def normalize_phone(phone: str) -> str:
    """
    Keep the last 10 digits (Indian mobile number without +91 / 0 prefix).
    """
    digits = re.sub(r"\D", "", phone or "")
    return digits[-10:]


def _post(url: str, payload: dict, api_key: str) -> None:
    settings = get_settings()
    resp = requests.post(
        url,
        json=payload,
        headers={"authorization": api_key},
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    resp.raise_for_status()
    body = resp.json()
    if body.get("return") is False:
        raise RuntimeError(f"Fast2SMS rejected message: {body.get('message')}")


def send_sms(phone: str, message: str) -> None:
    """
    Raises:
        ValueError: phone number is unusable.
        requests.RequestException / RuntimeError: provider failure.
    """
    settings = get_settings()
    number = normalize_phone(phone)
    if len(number) != 10:
        raise ValueError(f"Invalid phone number: {phone!r}")

    if not settings.FAST2SMS_API_KEY:
        logger.info("SMS (not configured) to %s: %s", number, message)
        return

    _post(
        settings.FAST2SMS_API_URL,
        {
            "route": settings.FAST2SMS_ROUTE,
            "sender_id": settings.FAST2SMS_SENDER_ID,
            "message": message,
            "language": "english",
            "numbers": number,
        },
        settings.FAST2SMS_API_KEY,
    )


def send_whatsapp(phone: str, message: str) -> None:
    settings = get_settings()
    number = normalize_phone(phone)
    if len(number) != 10:
        raise ValueError(f"Invalid phone number: {phone!r}")

    if not settings.FAST2SMS_API_KEY:
        logger.info("WhatsApp (not configured) to %s: %s", number, message)
        return

    _post(
        settings.FAST2SMS_WHATSAPP_URL,
        {"numbers": number, "message": message},
        settings.FAST2SMS_API_KEY,
    )
