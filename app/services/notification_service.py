# app/services/notification_service.py
"""
Notification dispatcher.

notify(recipient, channels, title, message) fans the requested channels out
on a thread pool and waits for all of them. Each channel runs in its own
try/except: a failing channel is logged and reported in `failed`, it never
stops the others and never propagates to the caller. Delivery is
at-most-once; nothing is queued for retry.

Channels:
  - app      : Notification row (in-app inbox), own session/transaction
  - sms      : Fast2SMS
  - whatsapp : Fast2SMS WhatsApp
  - email    : SMTP
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from sqlmodel import Session

from app.core import email_client, sms_client
from app.database import engine
from app.models.notification import Notification
from app.models.user import User
from app.repositories.notification_repo import NotificationRepository

logger = logging.getLogger(__name__)

ALL_CHANNELS = ("app", "sms", "whatsapp", "email")


@dataclass(frozen=True)
class Recipient:
    """
    Snapshot of the user fields channels need, safe to hand to worker threads.
    """

    user_id: int
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "Recipient":
        return cls(user_id=user.id, name=user.name, email=user.email, phone=user.phone)


@dataclass
class DispatchResult:
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class Channel(Protocol):
    name: str

    def send(self, recipient: Recipient, title: str, message: str) -> None: ...


class AppChannel:
    name = "app"

    def __init__(self, repo: NotificationRepository):
        self.repo = repo

    def send(self, recipient: Recipient, title: str, message: str) -> None:
        # Separate session: runs on a worker thread, after the caller committed
        with Session(engine) as session:
            self.repo.create(
                session,
                Notification(
                    user_id=recipient.user_id,
                    title=title,
                    message=message,
                    channel="app",
                ),
            )


class SmsChannel:
    name = "sms"

    def send(self, recipient: Recipient, title: str, message: str) -> None:
        if not recipient.phone:
            raise ValueError(f"user {recipient.user_id} has no phone number")
        sms_client.send_sms(recipient.phone, f"{title}: {message}")


class WhatsAppChannel:
    name = "whatsapp"

    def send(self, recipient: Recipient, title: str, message: str) -> None:
        if not recipient.phone:
            raise ValueError(f"user {recipient.user_id} has no phone number")
        sms_client.send_whatsapp(recipient.phone, f"*{title}*\n{message}")


class EmailChannel:
    name = "email"

    def send(self, recipient: Recipient, title: str, message: str) -> None:
        if not recipient.email:
            raise ValueError(f"user {recipient.user_id} has no email")
        greeting = f"Hi {recipient.name}," if recipient.name else "Hi,"
        email_client.send_email(
            to_email=recipient.email,
            subject=f"[Millet Meals] {title}",
            text_body=f"{greeting}\n\n{message}\n\nMillet Meals",
        )


class NotificationDispatcher:
    """
    Fan-out over named channels.

    `channels` is a plain dict so it can be swapped wholesale (tests use
    recording fakes).
    """

    def __init__(self, channels: dict[str, Channel]):
        self.channels = channels

    def _send_one(self, channel: Channel, recipient: Recipient, title: str, message: str) -> bool:
        try:
            channel.send(recipient, title, message)
            return True
        except Exception:
            logger.exception(
                "Notification channel %s failed for user %s", channel.name, recipient.user_id
            )
            return False

    def notify(
        self,
        recipient: Recipient,
        channels: Iterable[str],
        title: str,
        message: str,
    ) -> DispatchResult:
        result = DispatchResult()

        selected: list[Channel] = []
        for name in dict.fromkeys(channels):
            channel = self.channels.get(name)
            if channel is None:
                logger.warning("Unknown notification channel %r", name)
                result.failed.append(name)
            else:
                selected.append(channel)

        if not selected:
            return result

        with ThreadPoolExecutor(max_workers=len(selected)) as pool:
            futures = [
                (channel.name, pool.submit(self._send_one, channel, recipient, title, message))
                for channel in selected
            ]
            for name, future in futures:
                (result.sent if future.result() else result.failed).append(name)

        logger.info(
            "Notified user %s: sent=%s failed=%s",
            recipient.user_id,
            result.sent,
            result.failed,
        )
        return result


def default_channels() -> dict[str, Channel]:
    return {
        "app": AppChannel(NotificationRepository()),
        "sms": SmsChannel(),
        "whatsapp": WhatsAppChannel(),
        "email": EmailChannel(),
    }


dispatcher = NotificationDispatcher(default_channels())


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

ORDER_STATUS_MESSAGES: dict[str, tuple[str, str]] = {
    "confirmed": (
        "Order confirmed",
        "Your order #{order_id} of Rs {total:.2f} is confirmed. We'll start preparing it soon.",
    ),
    "preparing": ("Order being prepared", "Your order #{order_id} is being prepared."),
    "in_transit": ("Order on the way", "Your order #{order_id} has left our kitchen."),
    "out_for_delivery": (
        "Out for delivery",
        "Your order #{order_id} is out for delivery.",
    ),
    "nearby": ("Almost there", "Your order #{order_id} is nearby. Please keep your phone handy."),
    "delivered": ("Order delivered", "Your order #{order_id} has been delivered. Enjoy your meal!"),
    "cancelled": ("Order cancelled", "Your order #{order_id} has been cancelled."),
    "payment_failed": (
        "Payment failed",
        "Payment for your order #{order_id} did not go through. You can retry from your orders page.",
    ),
}


def order_status_message(status: str, order_id: int, total: float) -> tuple[str, str] | None:
    template = ORDER_STATUS_MESSAGES.get(status)
    if template is None:
        return None
    title, body = template
    return title, body.format(order_id=order_id, total=total)
