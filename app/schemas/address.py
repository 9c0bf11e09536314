# app/schemas/address.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class AddressCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=10, max_length=20)
    address_line1: str = Field(min_length=1)
    address_line2: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=6, max_length=10)
    is_default: bool = False

    @field_validator("name", "phone", "address_line1", "city", "state", "pincode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class AddressUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=10, max_length=20)
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = Field(default=None, min_length=6, max_length=10)
    is_default: bool | None = None


class AddressRead(SQLModel):
    id: int
    user_id: int
    name: str
    phone: str
    address_line1: str
    address_line2: str | None
    city: str
    state: str
    pincode: str
    is_default: bool
    created_at: datetime


class LocationCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    area: str = Field(min_length=1)
    pincode: str = Field(min_length=6, max_length=10)
    delivery_fee: float = Field(default=0.0, ge=0)


class LocationRead(SQLModel):
    id: int
    area: str
    pincode: str
    delivery_fee: float
