# app/schemas/meal.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class MealBase(SQLModel):
    """
    Shared editable fields of a meal.
    """

    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    price: float = Field(gt=0)
    category: str = Field(min_length=1, max_length=50)
    dietary_preferences: list[str] = Field(default_factory=list)
    is_popular: bool = False
    is_new: bool = False
    is_available: bool = True
    calories: int | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    fiber: float | None = Field(default=None, ge=0)

    @field_validator("name", "category")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class MealCreate(MealBase):
    model_config = ConfigDict(extra="forbid")


class MealUpdate(SQLModel):
    """
    Partial update; only provided fields are changed.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    dietary_preferences: list[str] | None = None
    is_popular: bool | None = None
    is_new: bool | None = None
    is_available: bool | None = None
    calories: int | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbs: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    fiber: float | None = Field(default=None, ge=0)


class CurryOptionRead(SQLModel):
    id: int
    meal_id: int
    name: str
    description: str | None
    price_adjustment: float


class MealRead(MealBase):
    id: int
    image_url: str | None
    created_at: datetime
    updated_at: datetime


class MealWithOptionsRead(MealRead):
    curry_options: list[CurryOptionRead] = Field(default_factory=list)


class CurryOptionCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    meal_id: int
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    price_adjustment: float = Field(default=0.0, ge=0)


class CurryOptionUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    price_adjustment: float | None = Field(default=None, ge=0)
