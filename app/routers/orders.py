# app/routers/orders.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.meal_repo import MealRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.payment_repo import PaymentIntentRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    DeliveryStatusRead,
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.notification_service import dispatcher
from app.services.order_service import OrderService
from app.services.payment_ledger import PaymentLedger

router = APIRouter(tags=["Orders"])

service = OrderService(
    OrderRepository(),
    CartRepository(),
    MealRepository(),
    AddressRepository(),
    LocationRepository(),
    UserRepository(),
    dispatcher,
    PaymentLedger(PaymentIntentRepository()),
)


@router.post(
    "/orders",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Create an order from the current user's cart.

    - status 'confirmed' when a valid Razorpay payment is included,
      otherwise 'pending' (pay later through /payments).
    - The cart is emptied in the same transaction.
    """
    return service.create_order_from_cart(session, current_user, payload)


@router.get("/orders", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get("/orders/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.patch("/orders/{order_id}", response_model=OrderRead)
def update_my_order(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Customer-side status change:

      - confirmed (with Razorpay payment fields)
      - cancelled (before the order is on its way)
    """
    return service.advance(session, order_id, payload, current_user)


@router.get("/orders/{order_id}/tracking", response_model=list[DeliveryStatusRead])
def get_order_tracking(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Delivery tracking history of an order, oldest first.
    """
    return service.list_tracking(session, current_user, order_id)


@router.get("/delivery-status", response_model=list[DeliveryStatusRead])
def get_active_delivery_status(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Latest tracking rows for the user's orders still in progress (polled by the UI).
    """
    return service.active_delivery_updates(session, current_user.id)
