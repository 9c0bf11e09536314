# app/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user account.

    Role:
      - "user" | "manager" | "admin"
      - anonymous visitors have no row and no token.

    Passwords are stored as argon2 hashes only.
    """

    __tablename__ = "users"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    username: str = Field(
        unique=True,
        index=True,
        max_length=50,
    )

    email: str = Field(
        unique=True,
        index=True,
        max_length=255,
    )

    password_hash: str

    name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | manager | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class RefreshToken(SQLModel, table=True):
    """
    Single refresh-token slot per user.

    A login or refresh overwrites the row wholesale, so only the most
    recently issued refresh token is accepted (last writer wins).
    Only a SHA-256 digest of the token is kept.
    """

    __tablename__ = "refresh_tokens"

    user_id: int = Field(primary_key=True, foreign_key="users.id")
    token_hash: str = Field(max_length=64)
    expires_at: datetime
