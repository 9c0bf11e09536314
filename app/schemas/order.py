# app/schemas/order.py
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal[
    "pending",
    "payment_failed",
    "confirmed",
    "preparing",
    "in_transit",
    "out_for_delivery",
    "nearby",
    "delivered",
    "cancelled",
]
PaymentMethod = Literal["razorpay", "cod"]


class PaymentProof(SQLModel):
    """
    Fields returned by Razorpay Checkout after a successful payment.
    """

    model_config = ConfigDict(extra="forbid")

    razorpay_order_id: str = Field(min_length=1)
    razorpay_payment_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    User provides:
      - delivery_address_id (saved address) OR delivery_address (free text)
      - payment_method
      - payment (optional): Razorpay proof, when paying in the same request

    Backend derives:
      - user_id from token
      - subtotal / delivery_charge / total_price from cart + location
      - status: 'confirmed' with a valid payment, else 'pending'
      - items from cart
    """

    model_config = ConfigDict(extra="forbid")

    delivery_address_id: int | None = None
    delivery_address: str | None = None
    payment_method: PaymentMethod = "razorpay"
    payment: PaymentProof | None = None

    @field_validator("delivery_address")
    @classmethod
    def normalize_address(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def address_required(self):
        if self.delivery_address_id is None and not self.delivery_address:
            raise ValueError("delivery_address_id or delivery_address is required")
        return self


class OrderStatusUpdate(SQLModel):
    """
    Status change request.

    Customers may only send 'confirmed' (with payment) or 'cancelled';
    staff may send any allow-listed status plus tracking text.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    payment: PaymentProof | None = None
    message: str | None = Field(default=None, max_length=500)
    estimated_time: str | None = Field(default=None, max_length=50)


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: int
    user_id: int
    status: OrderStatus
    subtotal: float
    delivery_charge: float
    total_price: float
    delivery_address: str
    delivery_address_id: int | None
    payment_method: str
    razorpay_order_id: str | None
    razorpay_payment_id: str | None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: int
    order_id: int
    meal_id: int
    meal_name: str
    quantity: int
    unit_price: float
    curry_option_id: int | None
    curry_option_name: str | None
    curry_option_price: float
    notes: str | None
    line_total: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class DeliveryStatusRead(SQLModel):
    id: int
    order_id: int
    status: str
    message: str
    estimated_time: str | None
    created_at: datetime
