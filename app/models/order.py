# app/models/order.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order, a snapshot of the cart at checkout time.

    status lifecycle (forward only, see OrderService.ALLOWED_TRANSITIONS):
      pending -> confirmed -> preparing -> in_transit -> out_for_delivery
              -> nearby -> delivered
      with cancelled / payment_failed side exits.
    """

    __tablename__ = "orders"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    user_id: int = Field(foreign_key="users.id", index=True)

    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    subtotal: float = Field(ge=0)
    delivery_charge: float = Field(default=0.0, ge=0)
    total_price: float = Field(ge=0, description="subtotal + delivery_charge")

    # Human-readable snapshot; the address row may change later
    delivery_address: str
    delivery_address_id: int | None = None

    # cod | razorpay | ...
    payment_method: str = Field(default="razorpay")

    razorpay_order_id: str | None = Field(default=None, index=True)
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order, priced at checkout.
    """

    __tablename__ = "order_items"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    order_id: int = Field(foreign_key="orders.id", index=True)
    meal_id: int = Field(index=True)
    meal_name: str

    quantity: int = Field(gt=0)

    # Meal base price at time of order
    unit_price: float

    curry_option_id: int | None = None
    curry_option_name: str | None = None
    curry_option_price: float = Field(default=0.0)

    notes: str | None = None

    line_total: float


class DeliveryStatusUpdate(SQLModel, table=True):
    """
    Tracking history entry shown to the customer while an order is on its way.
    """

    __tablename__ = "delivery_status_updates"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    order_id: int = Field(foreign_key="orders.id", index=True)
    user_id: int = Field(index=True)

    # preparing | in_transit | out_for_delivery | nearby | delivered
    status: str
    message: str
    estimated_time: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
