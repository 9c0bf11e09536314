# app/repositories/counter_repo.py
from sqlalchemy import update
from sqlmodel import Session, SQLModel, select

from app.models.counter import Counter


def next_id(session: Session, name: str) -> int:
    """
    Atomically bump the `name` sequence and return the new value.

    Runs inside the caller's transaction: the row lock taken by the UPDATE
    is held until the caller commits, so two writers never get the same id.
    """
    result = session.exec(
        update(Counter).where(Counter.name == name).values(seq=Counter.seq + 1)
    )
    if result.rowcount == 0:
        session.add(Counter(name=name, seq=1))
        session.flush()
        return 1
    return session.exec(select(Counter.seq).where(Counter.name == name)).one()


def assign_id(session: Session, row: SQLModel) -> SQLModel:
    """
    Give a new row its id from the sequence named after its table.
    """
    if row.id is None:
        row.id = next_id(session, row.__tablename__)
    return row
