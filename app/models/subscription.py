# app/models/subscription.py
from datetime import date, datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class SubscriptionPlan(SQLModel, table=True):
    """
    Recurring meal plan customers can enroll in.

    menu_items is a 7-day rotation:
      [{"day": 1, "main": "Ragi Dosa", "sides": ["Sambar"]}, ...]
    """

    __tablename__ = "subscription_plans"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    name: str = Field(max_length=100)
    description: str = Field(default="")

    price: float = Field(gt=0, description="Price per person for the full plan")
    duration: int = Field(gt=0, description="Plan length in days")

    features: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    # veg | veg_with_egg | nonveg
    dietary_preference: str = Field(index=True)
    # basic | premium | family
    plan_type: str = Field(default="basic")

    menu_items: list[dict] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    time_slot: str = Field(default="12:00-14:00")

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Subscription(SQLModel, table=True):
    """
    A customer's enrollment in a plan.

    status / end_date / days_remaining are NOT columns: they are derived
    on every read from (start_date, duration_days, cancelled) by
    app.services.subscription_status.compute_subscription_state.

    duration_days is the length of the current service window. It starts
    equal to the plan length (meals_per_month) and shrinks to the
    remaining days whenever the subscription is rescheduled.
    """

    __tablename__ = "subscriptions"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    user_id: int = Field(foreign_key="users.id", index=True)

    plan_id: int = Field(foreign_key="subscription_plans.id", index=True)
    plan: str = Field(description="Plan name at enrollment")
    subscription_type: str = Field(default="basic")

    start_date: date = Field(index=True)
    duration_days: int = Field(gt=0)
    meals_per_month: int = Field(gt=0)

    price: float = Field(ge=0)
    person_count: int = Field(default=1, gt=0)
    dietary_preference: str
    payment_method: str = Field(default="razorpay")

    time_slot: str | None = None
    delivery_address_id: int | None = None

    cancelled: bool = Field(default=False, index=True)

    # pending | paid
    payment_status: str = Field(default="pending")

    # Last derived status the customer was told about (sweep bookkeeping only)
    notified_status: str | None = None

    razorpay_order_id: str | None = Field(default=None, index=True)
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
