# app/routers/cart.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.meal_repo import MealRepository
from app.schemas.cart import CartItemCreate, CartItemUpdate, CartSummary
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

service = CartService(CartRepository(), MealRepository())

# Every endpoint answers with the whole cart, priced from the live menu,
# so the client never has to refetch after a change.


@router.get("", response_model=CartSummary)
def read_cart(
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    return service.get_cart_summary(session, user.id)


@router.post("", response_model=CartSummary)
def add_line(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    """
    Same meal with the same curry option merges into the existing line;
    the quantities add up.
    """
    return service.add_to_cart(session, user.id, payload)


@router.patch("/{item_id}", response_model=CartSummary)
def change_line(
    item_id: int,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    return service.update_item(session, user.id, item_id, payload)


@router.delete("/{item_id}", response_model=CartSummary)
def drop_line(
    item_id: int,
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    return service.remove_item(session, user.id, item_id)


@router.delete("", response_model=CartSummary)
def empty_cart(
    session: Session = Depends(get_session),
    user: User = Depends(require_auth),
):
    return service.clear_cart(session, user.id)
