# app/schemas/notification.py
from datetime import datetime

from sqlmodel import SQLModel


class NotificationRead(SQLModel):
    id: int
    title: str
    message: str
    channel: str
    read: bool
    created_at: datetime


class MarkAllReadResult(SQLModel):
    updated: int
