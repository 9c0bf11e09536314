# app/models/payment.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class PaymentIntent(SQLModel, table=True):
    """
    One Razorpay gateway order, as opened by POST /payments/create-order.

    A checkout proof is only accepted for the intent it was signed for:
    same customer, same purpose, same target and amount. The intent is
    consumed exactly once (status created -> paid), so one captured
    payment can never be applied twice.

    purpose / entity_id:
      cart                  -> None (the order does not exist yet)
      plan                  -> subscription plan id
      order                 -> order id
      subscription          -> subscription id
      subscription_renewal  -> subscription id
    applied_to is the order / subscription the payment ended up on.
    """

    __tablename__ = "payment_intents"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    razorpay_order_id: str = Field(unique=True, index=True, max_length=64)
    razorpay_payment_id: str | None = Field(default=None, unique=True, max_length=64)

    user_id: int = Field(foreign_key="users.id", index=True)
    purpose: str = Field(max_length=32)
    entity_id: int | None = None
    amount: int = Field(ge=0, description="Amount in paise")

    # created | paid
    status: str = Field(default="created", index=True)
    applied_to: int | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    paid_at: datetime | None = None
