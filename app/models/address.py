# app/models/address.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Saved delivery address.

    At most one address per user has is_default=True; the repository
    clears the flag on the user's other rows whenever a new default is set.
    """

    __tablename__ = "addresses"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    user_id: int = Field(foreign_key="users.id", index=True)

    name: str = Field(max_length=100, description="Receiver name")
    phone: str = Field(max_length=20)
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    pincode: str = Field(max_length=10, index=True)

    is_default: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Location(SQLModel, table=True):
    """
    Serviceable area with its delivery fee, matched by pincode.
    """

    __tablename__ = "locations"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    area: str
    pincode: str = Field(unique=True, index=True, max_length=10)
    delivery_fee: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
