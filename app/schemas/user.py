# app/schemas/user.py
from datetime import datetime
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "manager", "admin"]


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class RegisterRequest(SQLModel):
    """
    Self sign-up payload. New accounts always get role="user".

    Validation rules:
      - username: 3-50 chars, no whitespace
      - password: at least 8 chars
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("username cannot contain whitespace")
        return v

    @field_validator("name", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class LoginRequest(SQLModel):
    """
    `login` is either the username or the email.
    """

    model_config = ConfigDict(extra="forbid")

    login: str
    password: str


class RefreshRequest(SQLModel):
    """
    Optional body for /auth/refresh when the client cannot send cookies.
    """

    model_config = ConfigDict(extra="forbid")

    refresh_token: str | None = None


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: int
    username: str
    email: EmailStr
    name: str | None
    phone: str | None
    role: Role
    created_at: datetime


class TokenResponse(SQLModel):
    """
    Returned by login / register / refresh. The same tokens are also set
    as httpOnly cookies.
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserRead


class UserUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    Username, email and role are not editable here.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("name", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class AdminUserCreate(RegisterRequest):
    """
    Admin-created account; may carry any role.
    """

    role: Role = "user"


class AdminUserUpdate(SQLModel):
    """
    Admin-only partial update (role and profile fields).
    """

    model_config = ConfigDict(extra="forbid")

    role: Role | None = None
    name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("name", "phone")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)
