# app/repositories/payment_repo.py
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.payment import PaymentIntent
from app.repositories.counter_repo import assign_id


class PaymentIntentRepository:
    """
    NOTE: no commits here; consuming an intent must land in the same
    transaction as the order / subscription change it pays for.
    """

    def get_by_gateway_order_id(self, session: Session, razorpay_order_id: str) -> PaymentIntent | None:
        stmt = select(PaymentIntent).where(PaymentIntent.razorpay_order_id == razorpay_order_id)
        return session.exec(stmt).first()

    def create(self, session: Session, intent: PaymentIntent) -> PaymentIntent:
        assign_id(session, intent)
        session.add(intent)
        session.flush()
        return intent

    def consume(
        self,
        session: Session,
        intent_id: int,
        razorpay_payment_id: str,
        applied_to: int,
    ) -> bool:
        """
        created -> paid, once. False if another request got there first
        or the payment id is already on record.
        """
        try:
            result = session.exec(
                update(PaymentIntent)
                .where(PaymentIntent.id == intent_id, PaymentIntent.status == "created")
                .values(
                    status="paid",
                    razorpay_payment_id=razorpay_payment_id,
                    applied_to=applied_to,
                    paid_at=datetime.now(timezone.utc),
                )
            )
        except IntegrityError:
            return False
        return result.rowcount == 1
