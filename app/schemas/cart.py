# app/schemas/cart.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _normalize_notes(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    model_config = ConfigDict(extra="forbid")

    meal_id: int
    curry_option_id: int | None = None
    quantity: int = Field(default=1, gt=0)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        return _normalize_notes(v)


class CartItemUpdate(SQLModel):
    """
    Partial update of a cart line. At least one field must be present.

    `curry_option_id` may be set to null explicitly to drop the option.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int | None = Field(default=None, gt=0)
    notes: str | None = Field(default=None, max_length=500)
    curry_option_id: int | None = None

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        return _normalize_notes(v)


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, priced at read time.
    """

    id: int
    meal_id: int
    meal_name: str | None = None
    meal_image_url: str | None = None
    quantity: int
    unit_price: float
    curry_option_id: int | None = None
    curry_option_name: str | None = None
    curry_option_price: float = 0.0
    notes: str | None = None
    line_total: float
    is_available: bool = True
    created_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: float
