# app/services/payment_service.py
import json
import logging
from typing import Any

from sqlmodel import Session

from app.core import razorpay_client
from app.core.config import get_settings
from app.core.errors import InvalidTransition, NotFound, PaymentVerificationFailed, ValidationError
from app.models.payment import PaymentIntent
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.schemas.order import PaymentProof
from app.schemas.payment import (
    CreatePaymentOrder,
    PaymentConfigRead,
    PaymentFailed,
    PaymentOrderRead,
    PaymentResult,
    VerifyPayment,
)
from app.services.order_service import OrderService
from app.services.payment_ledger import PREPAID_PURPOSES, PaymentLedger
from app.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Razorpay payment flow.

    Flow:
      1. create-order: gateway order for the cart, a plan or an existing
         order / subscription. The amount is computed here, never taken
         from the client, and the gateway order is recorded in the ledger.
      2. verify: checkout signature + ledger match -> order confirmed /
         subscription paid / renewal applied, each payment exactly once.
      3. failed: customer-side failure -> order payment_failed.
      4. webhook: server-to-server events, authenticated by their own HMAC
         and resolved through the ledger, not through client-supplied notes.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        subscription_repo: SubscriptionRepository,
        order_service: OrderService,
        subscription_service: SubscriptionService,
        ledger: PaymentLedger,
    ):
        self.order_repo = order_repo
        self.subscription_repo = subscription_repo
        self.order_service = order_service
        self.subscription_service = subscription_service
        self.ledger = ledger

    def get_config(self) -> PaymentConfigRead:
        settings = get_settings()
        return PaymentConfigRead(
            key_id=settings.RAZORPAY_KEY_ID,
            currency=settings.PAYMENT_CURRENCY,
            enabled=razorpay_client.is_configured(),
        )

    # -------- create-order --------

    def _amount_for(self, session: Session, user: User, payload: CreatePaymentOrder):
        """
        Returns (amount in rupees, entity the gateway order is stored on or None).
        """
        if payload.type == "cart":
            quote = self.order_service.quote_cart(
                session, user.id, payload.delivery_address_id, payload.delivery_address
            )
            return quote.total, None

        if payload.type == "plan":
            plan = self.subscription_service.get_plan(session, payload.entity_id)
            if not plan.is_active:
                raise ValidationError("Subscription plan is not available")
            return round(plan.price * payload.person_count, 2), None

        if payload.type == "order":
            order = self.order_repo.get_by_id(session, payload.entity_id)
            if not order or order.user_id != user.id:
                raise NotFound("Order not found")
            if order.status not in ("pending", "payment_failed"):
                raise InvalidTransition(f"Order is already {order.status}")
            return order.total_price, order

        sub = self.subscription_repo.get_by_id(session, payload.entity_id)
        if not sub or sub.user_id != user.id:
            raise NotFound("Subscription not found")
        if sub.cancelled:
            raise InvalidTransition("Subscription is cancelled")
        if payload.type == "subscription" and sub.payment_status == "paid":
            raise InvalidTransition("Subscription is already paid")
        return sub.price, sub

    def create_payment_order(
        self,
        session: Session,
        user: User,
        payload: CreatePaymentOrder,
    ) -> PaymentOrderRead:
        amount, target = self._amount_for(session, user, payload)
        receipt = f"{payload.type}_{payload.entity_id or user.id}"

        intent = razorpay_client.create_intent(
            amount,
            receipt=receipt,
            notes={
                "entity_type": payload.type,
                "entity_id": str(payload.entity_id or ""),
                "user_id": str(user.id),
            },
        )

        self.ledger.open(
            session,
            user.id,
            payload.type,
            payload.entity_id,
            razorpay_client.to_paise(amount),
            intent["id"],
        )
        if target is not None:
            target.razorpay_order_id = intent["id"]
            session.add(target)
        session.commit()

        logger.info(
            "Gateway order %s created for %s %s (%s paise)",
            intent["id"],
            payload.type,
            payload.entity_id,
            intent["amount"],
        )
        return PaymentOrderRead(
            razorpay_order_id=intent["id"],
            amount=intent["amount"],
            currency=intent["currency"],
            receipt=intent["receipt"],
            key_id=get_settings().RAZORPAY_KEY_ID,
        )

    # -------- verify / failed --------

    def verify(self, session: Session, user: User, payload: VerifyPayment) -> PaymentResult:
        proof = PaymentProof(
            razorpay_order_id=payload.razorpay_order_id,
            razorpay_payment_id=payload.razorpay_payment_id,
            razorpay_signature=payload.razorpay_signature,
        )

        if payload.type == "order":
            order = self.order_service.confirm_with_payment(session, payload.entity_id, user, proof)
            return PaymentResult(type="order", entity_id=order.id, status=order.status)

        # Subscriptions: ownership first, then the proof
        self.subscription_service.get_own(session, user.id, payload.entity_id)
        if payload.type == "subscription_renewal":
            sub = self.subscription_service.renew(session, payload.entity_id, proof)
        else:
            sub = self.subscription_service.mark_paid(session, payload.entity_id, proof)
        return PaymentResult(type=payload.type, entity_id=sub.id, status=sub.payment_status)

    def mark_failed(self, session: Session, user: User, payload: PaymentFailed) -> PaymentResult:
        if payload.type != "order":
            # Subscriptions simply stay unpaid
            self.subscription_service.get_own(session, user.id, payload.entity_id)
            logger.info(
                "Payment failed for %s %s: %s", payload.type, payload.entity_id, payload.reason
            )
            return PaymentResult(type=payload.type, entity_id=payload.entity_id, status="pending")

        order = self.order_repo.get_by_id(session, payload.entity_id)
        if not order or order.user_id != user.id:
            raise NotFound("Order not found")

        logger.info("Payment failed for order %s: %s", order.id, payload.reason)
        if order.status == "payment_failed":
            return PaymentResult(type="order", entity_id=order.id, status=order.status)

        order = self.order_service.system_advance(session, order.id, "payment_failed")
        return PaymentResult(type="order", entity_id=order.id, status=order.status)

    # -------- webhook --------

    def handle_webhook(
        self,
        session: Session,
        raw_body: bytes,
        signature: str | None,
    ) -> dict[str, Any]:
        """
        Authenticate first, parse second. Unknown events are acknowledged.

        Raises:
            ValidationError(400): missing / invalid signature or malformed body.
        """
        if not signature:
            raise ValidationError("Missing Razorpay signature")
        if not razorpay_client.verify_webhook_signature(raw_body, signature):
            logger.warning("Rejected Razorpay webhook with invalid signature")
            raise ValidationError("Invalid webhook signature")

        try:
            event = json.loads(raw_body)
        except ValueError:
            raise ValidationError("Malformed webhook body")
        if not isinstance(event, dict):
            raise ValidationError("Malformed webhook body")

        name = event.get("event")
        payment = ((event.get("payload") or {}).get("payment") or {}).get("entity")
        if not isinstance(payment, dict) or name not in ("payment.captured", "payment.failed"):
            logger.info("Ignoring Razorpay webhook event %s", name)
            return {"status": "ignored", "event": name}

        intent = self.ledger.find(session, payment.get("order_id"))
        if intent is None:
            logger.warning("Razorpay webhook %s for unknown gateway order %s", name, payment.get("order_id"))
            return {"status": "ignored", "event": name}

        # Cart / plan payments are applied by the checkout request itself
        if intent.status != "created" or intent.purpose in PREPAID_PURPOSES:
            logger.info("Webhook %s for gateway order %s needs no action", name, intent.razorpay_order_id)
            return {"status": "ok", "event": name}

        if name == "payment.failed":
            if intent.purpose == "order":
                self._move_order(session, intent.entity_id, "payment_failed")
            return {"status": "ok", "event": name}

        payment_fields = {
            "razorpay_order_id": intent.razorpay_order_id,
            "razorpay_payment_id": payment.get("id"),
        }
        if not payment_fields["razorpay_payment_id"]:
            raise ValidationError("Malformed webhook body")

        if intent.purpose == "order":
            self._move_order(session, intent.entity_id, "confirmed", payment_fields, intent)
        else:
            try:
                self.subscription_service.apply_capture(session, intent, payment_fields)
            except (InvalidTransition, NotFound, PaymentVerificationFailed) as exc:
                logger.info(
                    "Webhook capture for subscription %s skipped: %s", intent.entity_id, exc.message
                )
        return {"status": "ok", "event": name}

    def _move_order(
        self,
        session: Session,
        order_id: int,
        new_status: str,
        payment_fields: dict[str, str] | None = None,
        intent: PaymentIntent | None = None,
    ) -> None:
        """
        Webhooks race the browser-side verify call; whichever lands second
        finds the order already moved and is logged, not failed.
        """
        try:
            self.order_service.system_advance(
                session, order_id, new_status, payment_fields=payment_fields, intent=intent
            )
        except (InvalidTransition, NotFound, PaymentVerificationFailed) as exc:
            logger.info("Webhook %s for order %s skipped: %s", new_status, order_id, exc.message)
