# app/models/meal.py
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Meal(SQLModel, table=True):
    """
    Menu entry that can be added to the cart.
    """

    __tablename__ = "meals"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    name: str = Field(max_length=120, index=True)
    description: str = Field(default="")

    price: float = Field(gt=0, description="Base unit price (INR)")

    category: str = Field(max_length=50, index=True)

    image_url: str | None = Field(default=None, description="Public image URL")

    # veg | veg_with_egg | nonveg ...
    dietary_preferences: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    is_popular: bool = Field(default=False)
    is_new: bool = Field(default=False)
    is_available: bool = Field(default=True, index=True)

    calories: int | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CurryOption(SQLModel, table=True):
    """
    Priced variant of a meal (a different curry / sauce).
    Adds `price_adjustment` to the meal's unit price.
    """

    __tablename__ = "curry_options"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    meal_id: int = Field(foreign_key="meals.id", index=True)

    name: str = Field(max_length=100)
    description: str | None = None

    price_adjustment: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
