# app/routers/addresses.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.schemas.address import AddressCreate, AddressRead, AddressUpdate
from app.services.address_service import AddressService

router = APIRouter(prefix="/addresses", tags=["Addresses"])

service = AddressService(AddressRepository(), LocationRepository())


@router.get("", response_model=list[AddressRead])
def list_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Saved addresses, default first.
    """
    return service.list_addresses(session, current_user.id)


@router.post("", response_model=AddressRead, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.create_address(session, current_user.id, payload)


@router.patch("/{address_id}", response_model=AddressRead)
def update_address(
    address_id: int,
    payload: AddressUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.update_address(session, current_user.id, address_id, payload)


@router.post("/{address_id}/default", response_model=AddressRead)
def set_default_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Make this the default address; every other address of the user is unset.
    """
    return service.set_default(session, current_user.id, address_id)


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_address(
    address_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    service.delete_address(session, current_user.id, address_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
