# app/models/notification.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Notification(SQLModel, table=True):
    """
    In-app notification inbox entry (the "app" channel of the dispatcher).
    """

    __tablename__ = "notifications"

    id: int | None = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": False},
    )

    user_id: int = Field(foreign_key="users.id", index=True)

    title: str
    message: str
    # app | sms | whatsapp | email
    channel: str = Field(default="app")

    read: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
