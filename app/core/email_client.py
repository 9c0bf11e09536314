# app/core/email_client.py
"""
Outbound mail over SMTP, configured by the SMTP_* settings.

Two connection modes:
  SMTP_USE_SSL=true             implicit TLS, usually port 465
  SMTP_USE_SSL=false (default)  plain SMTP upgraded with STARTTLS when
                                SMTP_USE_TLS=true, usually port 587

Example .env for a Gmail sender with an app password:

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=orders@example.com
    SMTP_PASSWORD=<app password>
    SMTP_FROM_NAME=Millet Meals
    SMTP_USE_SSL=true
"""
import logging
import smtplib
from contextlib import contextmanager
from email.message import EmailMessage
from email.utils import formataddr

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def is_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def build_message(
    settings: Settings,
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> EmailMessage:
    sender = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or ""
    msg = EmailMessage()
    msg["From"] = formataddr((settings.SMTP_FROM_NAME, sender))
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    return msg


@contextmanager
def smtp_connection(settings: Settings):
    """Logged-in SMTP connection; closed on exit even if sending failed."""
    timeout = settings.HTTP_TIMEOUT_SECONDS
    if settings.SMTP_USE_SSL:
        server: smtplib.SMTP = smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
        if settings.SMTP_USE_TLS:
            server.starttls()
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        yield server
    finally:
        try:
            server.quit()
        except smtplib.SMTPException as exc:
            logger.debug("SMTP quit failed: %s", exc)


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Deliver one message to one recipient.

    Raises RuntimeError when SMTP is not configured; SMTP failures
    propagate as smtplib.SMTPException.
    """
    settings = get_settings()
    if not is_configured(settings):
        raise RuntimeError("SMTP is not configured (SMTP_HOST / SMTP_USERNAME / SMTP_PASSWORD)")

    msg = build_message(settings, to_email, subject, text_body, html_body)
    with smtp_connection(settings) as server:
        server.send_message(msg)
    logger.debug("Email '%s' sent to %s", subject, to_email)
