# app/schemas/payment.py
from typing import Literal

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field

from app.schemas.order import PaymentProof

# "cart" and "plan" are paid before the order / subscription exists and
# are settled by checkout itself.
PaymentPurpose = Literal["cart", "plan", "order", "subscription", "subscription_renewal"]
SettlePurpose = Literal["order", "subscription", "subscription_renewal"]


class PaymentConfigRead(SQLModel):
    """
    Public checkout config (never includes the secret).
    """

    key_id: str | None
    currency: str
    enabled: bool


class CreatePaymentOrder(SQLModel):
    """
    Ask for a gateway order. The amount is always computed server side:

      cart                  current cart total, delivery charge of the address included
      plan                  plan price * person_count (entity_id = plan id)
      order, subscription   stored total of the entity
      subscription_renewal  stored subscription price
    """

    model_config = ConfigDict(extra="forbid")

    type: PaymentPurpose
    entity_id: int | None = None
    person_count: int = Field(default=1, gt=0, le=20)
    delivery_address_id: int | None = None
    delivery_address: str | None = None

    @model_validator(mode="after")
    def entity_required(self) -> "CreatePaymentOrder":
        if self.type != "cart" and self.entity_id is None:
            raise ValueError("entity_id is required")
        return self


class PaymentOrderRead(SQLModel):
    razorpay_order_id: str
    amount: int = Field(description="Amount in paise")
    currency: str
    receipt: str
    key_id: str | None


class VerifyPayment(PaymentProof):
    model_config = ConfigDict(extra="forbid")

    type: SettlePurpose
    entity_id: int


class PaymentFailed(SQLModel):
    model_config = ConfigDict(extra="forbid")

    type: SettlePurpose = "order"
    entity_id: int
    reason: str | None = None


class PaymentResult(SQLModel):
    type: SettlePurpose
    entity_id: int
    status: str
