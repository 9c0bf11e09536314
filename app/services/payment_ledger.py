# app/services/payment_ledger.py
import logging

from sqlmodel import Session

from app.core import razorpay_client
from app.core.errors import PaymentVerificationFailed
from app.models.payment import PaymentIntent
from app.repositories.payment_repo import PaymentIntentRepository
from app.schemas.order import PaymentProof

logger = logging.getLogger(__name__)

# Purposes whose target does not exist until the payment is applied
PREPAID_PURPOSES = {"cart", "plan"}


class PaymentLedger:
    """
    Binds checkout proofs to the gateway order they were issued for.

    Usage:
      intent = ledger.match(session, proof, user_id, "order", entity_id=order.id)
      ... write the order / subscription change ...
      ledger.claim(session, intent, proof.razorpay_payment_id, applied_to=order.id)
      session.commit()

    match() returns None when this exact payment was already applied to
    this same target, so callers can treat a repeated proof as a no-op.
    """

    def __init__(self, repo: PaymentIntentRepository):
        self.repo = repo

    def open(
        self,
        session: Session,
        user_id: int,
        purpose: str,
        entity_id: int | None,
        amount_paise: int,
        razorpay_order_id: str,
    ) -> PaymentIntent:
        return self.repo.create(
            session,
            PaymentIntent(
                razorpay_order_id=razorpay_order_id,
                user_id=user_id,
                purpose=purpose,
                entity_id=entity_id,
                amount=amount_paise,
            ),
        )

    def find(self, session: Session, razorpay_order_id: str | None) -> PaymentIntent | None:
        if not razorpay_order_id:
            return None
        return self.repo.get_by_gateway_order_id(session, razorpay_order_id)

    def match(
        self,
        session: Session,
        proof: PaymentProof,
        user_id: int,
        purpose: str,
        entity_id: int | None = None,
        amount: float | None = None,
    ) -> PaymentIntent | None:
        """
        Raises:
            PaymentVerificationFailed(400): bad signature, unknown gateway
            order, proof issued for something else, amount mismatch, or a
            payment that was already used elsewhere.
        """
        razorpay_client.ensure_valid_payment_signature(
            proof.razorpay_order_id, proof.razorpay_payment_id, proof.razorpay_signature
        )

        intent = self.find(session, proof.razorpay_order_id)
        if (
            intent is None
            or intent.user_id != user_id
            or intent.purpose != purpose
            or (entity_id is not None and intent.entity_id != entity_id)
        ):
            logger.warning(
                "Payment %s does not belong to %s %s of user %s",
                proof.razorpay_payment_id,
                purpose,
                entity_id,
                user_id,
            )
            raise PaymentVerificationFailed("Payment does not belong to this purchase")

        if amount is not None and intent.amount != razorpay_client.to_paise(amount):
            raise PaymentVerificationFailed("Paid amount does not match the current total")

        if intent.status == "paid":
            if purpose not in PREPAID_PURPOSES and intent.razorpay_payment_id == proof.razorpay_payment_id:
                return None
            raise PaymentVerificationFailed("Payment has already been used")
        return intent

    def claim(
        self,
        session: Session,
        intent: PaymentIntent,
        razorpay_payment_id: str,
        applied_to: int,
    ) -> None:
        """
        Consume the intent inside the caller's transaction. On a lost race
        the transaction is rolled back.
        """
        if not self.repo.consume(session, intent.id, razorpay_payment_id, applied_to):
            session.rollback()
            raise PaymentVerificationFailed("Payment has already been used")
        logger.info(
            "Payment %s applied to %s %s", razorpay_payment_id, intent.purpose, applied_to
        )
