# app/services/address_service.py
from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.models.address import Address, Location
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.schemas.address import AddressCreate, AddressUpdate, LocationCreate


class AddressService:
    """
    Saved addresses and serviceable locations.

    Rules:
      - at most one default address per user
      - a user's first address becomes the default
      - deleting the default promotes the oldest remaining address
    """

    def __init__(self, repo: AddressRepository, location_repo: LocationRepository):
        self.repo = repo
        self.location_repo = location_repo

    def list_addresses(self, session: Session, user_id: int) -> list[Address]:
        return self.repo.list_for_user(session, user_id)

    def _get_own(self, session: Session, user_id: int, address_id: int) -> Address:
        address = self.repo.get_for_user(session, user_id, address_id)
        if not address:
            raise NotFound("Address not found")
        return address

    def create_address(self, session: Session, user_id: int, payload: AddressCreate) -> Address:
        address = Address(user_id=user_id, **payload.model_dump())
        if not address.is_default and self.repo.get_default(session, user_id) is None:
            address.is_default = True
        return self.repo.create(session, address)

    def update_address(
        self,
        session: Session,
        user_id: int,
        address_id: int,
        payload: AddressUpdate,
    ) -> Address:
        address = self._get_own(session, user_id, address_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("is_default") is False and address.is_default:
            raise ValidationError("Set another address as default instead")

        for key, value in changes.items():
            if value is not None:
                setattr(address, key, value.strip() if isinstance(value, str) else value)
        return self.repo.update(session, address)

    def set_default(self, session: Session, user_id: int, address_id: int) -> Address:
        address = self._get_own(session, user_id, address_id)
        address.is_default = True
        return self.repo.update(session, address)

    def delete_address(self, session: Session, user_id: int, address_id: int) -> None:
        address = self._get_own(session, user_id, address_id)
        was_default = address.is_default
        self.repo.delete(session, address)

        if was_default:
            remaining = self.repo.list_for_user(session, user_id)
            if remaining:
                successor = min(remaining, key=lambda a: a.id)
                successor.is_default = True
                self.repo.update(session, successor)

    # ---- Locations ----

    def list_locations(self, session: Session) -> list[Location]:
        return self.location_repo.list(session)

    def create_location(self, session: Session, payload: LocationCreate) -> Location:
        if self.location_repo.get_by_pincode(session, payload.pincode.strip()):
            raise ValidationError("Location for this pincode already exists")
        location = Location(
            area=payload.area.strip(),
            pincode=payload.pincode.strip(),
            delivery_fee=payload.delivery_fee,
        )
        return self.location_repo.create(session, location)
