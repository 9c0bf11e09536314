# app/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    Shopping cart entry for a user.

    One user cannot have 2 rows for the same (meal, curry option) pair;
    adding the same pair again bumps `quantity` instead.

    The curry option name/price are a snapshot taken when the option was
    picked, used only if the option is later deleted from the menu.
    """

    __tablename__ = "cart_items"
    # NULL curry options must collide too, hence the coalesce
    __table_args__ = (
        Index(
            "uq_cart_line",
            "user_id",
            "meal_id",
            text("coalesce(curry_option_id, 0)"),
            unique=True,
        ),
    )

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    user_id: int = Field(foreign_key="users.id", index=True)
    meal_id: int = Field(foreign_key="meals.id", index=True)

    quantity: int = Field(gt=0, description="Must be >= 1")

    curry_option_id: int | None = Field(default=None, index=True)
    curry_option_name: str | None = None
    curry_option_price: float | None = None

    notes: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
