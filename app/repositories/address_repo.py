# app/repositories/address_repo.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.address import Address, Location
from app.repositories.counter_repo import assign_id


class AddressRepository:
    """
    Data access layer for saved addresses.

    The single-default invariant is kept here: every write that sets
    is_default=True first clears the flag on the user's other rows, in the
    same transaction.
    """

    def list_for_user(self, session: Session, user_id: int) -> list[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.id)
        )
        return list(session.exec(stmt).all())

    def get_for_user(self, session: Session, user_id: int, address_id: int) -> Address | None:
        stmt = select(Address).where(Address.id == address_id, Address.user_id == user_id)
        return session.exec(stmt).first()

    def get_default(self, session: Session, user_id: int) -> Address | None:
        stmt = select(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
        return session.exec(stmt).first()

    def _clear_default(self, session: Session, user_id: int, keep_id: int | None) -> None:
        stmt = update(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
        if keep_id is not None:
            stmt = stmt.where(Address.id != keep_id)
        session.exec(stmt.values(is_default=False))

    def create(self, session: Session, address: Address) -> Address:
        assign_id(session, address)
        if address.is_default:
            self._clear_default(session, address.user_id, keep_id=address.id)
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def update(self, session: Session, address: Address) -> Address:
        if address.is_default:
            self._clear_default(session, address.user_id, keep_id=address.id)
        address.updated_at = datetime.now(timezone.utc)
        session.add(address)
        session.commit()
        session.refresh(address)
        return address

    def delete(self, session: Session, address: Address) -> None:
        session.delete(address)
        session.commit()


class LocationRepository:
    """
    Serviceable pincodes and their delivery fee.
    """

    def list(self, session: Session) -> list[Location]:
        return list(session.exec(select(Location).order_by(Location.area)).all())

    def get_by_pincode(self, session: Session, pincode: str) -> Location | None:
        stmt = select(Location).where(Location.pincode == pincode)
        return session.exec(stmt).first()

    def create(self, session: Session, location: Location) -> Location:
        assign_id(session, location)
        session.add(location)
        session.commit()
        session.refresh(location)
        return location
