# app/schemas/subscription.py
from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.order import PaymentProof

DietaryPreference = Literal["veg", "veg_with_egg", "nonveg"]
PlanType = Literal["basic", "premium", "family"]
SubscriptionStatus = Literal["pending", "active", "completed", "cancelled"]


class MenuDay(SQLModel):
    """
    One day of a plan's rotation.
    """

    day: int = Field(ge=1, le=7)
    main: str
    sides: list[str] = Field(default_factory=list)


class PlanBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    price: float = Field(gt=0)
    duration: int = Field(gt=0, le=366)
    features: list[str] = Field(default_factory=list)
    dietary_preference: DietaryPreference
    plan_type: PlanType = "basic"
    menu_items: list[MenuDay] = Field(default_factory=list)
    time_slot: str = "12:00-14:00"
    is_active: bool = True


class PlanCreate(PlanBase):
    model_config = ConfigDict(extra="forbid")


class PlanUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    duration: int | None = Field(default=None, gt=0, le=366)
    features: list[str] | None = None
    dietary_preference: DietaryPreference | None = None
    plan_type: PlanType | None = None
    menu_items: list[MenuDay] | None = None
    time_slot: str | None = None
    is_active: bool | None = None


class PlanRead(PlanBase):
    id: int
    created_at: datetime


class PlansByPreference(SQLModel):
    """
    Active plans grouped by dietary preference, as the plan picker shows them.
    """

    veg: list[PlanRead] = Field(default_factory=list)
    veg_with_egg: list[PlanRead] = Field(default_factory=list)
    nonveg: list[PlanRead] = Field(default_factory=list)


class SubscriptionCreate(SQLModel):
    """
    Enroll in a plan.

    price is computed server side: plan.price * person_count.
    """

    model_config = ConfigDict(extra="forbid")

    plan_id: int
    start_date: date
    person_count: int = Field(default=1, gt=0, le=20)
    time_slot: str | None = None
    delivery_address_id: int | None = None
    payment_method: str = "razorpay"
    payment: PaymentProof | None = None


class SubscriptionUpdate(SQLModel):
    """
    Delivery details that can change without touching the schedule.
    """

    model_config = ConfigDict(extra="forbid")

    time_slot: str | None = None
    delivery_address_id: int | None = None
    person_count: int | None = Field(default=None, gt=0, le=20)


class SubscriptionModify(SubscriptionUpdate):
    """
    Pause-and-resume: the remaining days are moved to start on resume_date.
    """

    resume_date: date

    @field_validator("time_slot")
    @classmethod
    def normalize_slot(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class SubscriptionRead(SQLModel):
    """
    status / end_date / days_remaining are computed at read time.
    """

    id: int
    user_id: int
    plan_id: int
    plan: str
    subscription_type: str
    start_date: date
    end_date: date
    duration_days: int
    meals_per_month: int
    days_remaining: int
    status: SubscriptionStatus
    price: float
    person_count: int
    dietary_preference: str
    payment_method: str
    payment_status: str
    time_slot: str | None
    delivery_address_id: int | None
    created_at: datetime
