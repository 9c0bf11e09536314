# app/models/counter.py
from sqlmodel import SQLModel, Field


class Counter(SQLModel, table=True):
    """
    Shared id sequence, one row per entity name ("order", "cart_item", ...).

    Every entity gets its integer id from here instead of relying on the
    database's own autoincrement, so ids are identical across backends.
    """

    __tablename__ = "counters"

    name: str = Field(primary_key=True, max_length=50)
    seq: int = Field(default=0, ge=0)
