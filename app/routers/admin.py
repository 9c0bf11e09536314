# app/routers/admin.py
from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_manager
from app.core.errors import ValidationError
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.repositories.meal_repo import MealRepository
from app.routers.orders import service as order_service
from app.routers.subscriptions import service as subscription_service
from app.schemas.address import LocationCreate, LocationRead
from app.schemas.meal import (
    CurryOptionCreate,
    CurryOptionRead,
    CurryOptionUpdate,
    MealCreate,
    MealRead,
    MealUpdate,
)
from app.schemas.order import OrderRead, OrderStatus, OrderStatusUpdate, OrderWithItemsRead
from app.schemas.subscription import PlanCreate, PlanRead, PlanUpdate, SubscriptionRead
from app.services.address_service import AddressService
from app.services.meal_service import MealService

# Whole back office is open to managers and admins
router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_manager)],
)

meal_service = MealService(MealRepository())
address_service = AddressService(AddressRepository(), LocationRepository())


# -------- Orders --------


@router.get("/orders", response_model=list[OrderRead])
def list_all_orders(
    status_filter: OrderStatus | None = None,
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders, optionally filtered by status (`status_filter`).
    """
    return order_service.list_all_orders(session, status_filter, skip, limit)


@router.get("/orders/{order_id}", response_model=OrderWithItemsRead)
def get_order_admin(
    order_id: int,
    session: Session = Depends(get_session),
):
    return order_service.get_order_admin(session, order_id)


@router.patch("/orders/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_manager),
):
    """
    Move an order along the delivery chain:

      pending -> confirmed -> preparing -> in_transit -> out_for_delivery
              -> nearby -> delivered

    Cancellation is allowed until the order leaves the kitchen.
    Optional `message` / `estimated_time` go into the tracking history.
    """
    return order_service.advance(session, order_id, payload, current_user)


# -------- Subscriptions & plans --------


@router.get("/subscriptions", response_model=list[SubscriptionRead])
def list_all_subscriptions(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 100,
):
    return subscription_service.list_all(session, skip, limit)


@router.get("/subscription-plans", response_model=list[PlanRead])
def list_all_plans(session: Session = Depends(get_session)):
    """
    All plans, including inactive ones.
    """
    return subscription_service.list_all_plans(session)


@router.post(
    "/subscription-plans",
    response_model=PlanRead,
    status_code=status.HTTP_201_CREATED,
)
def create_plan(payload: PlanCreate, session: Session = Depends(get_session)):
    return subscription_service.create_plan(session, payload)


@router.put("/subscription-plans/{plan_id}", response_model=PlanRead)
def update_plan(
    plan_id: int,
    payload: PlanUpdate,
    session: Session = Depends(get_session),
):
    return subscription_service.update_plan(session, plan_id, payload)


@router.delete("/subscription-plans/{plan_id}", response_model=PlanRead)
def deactivate_plan(plan_id: int, session: Session = Depends(get_session)):
    """
    Plans are deactivated, not removed; existing subscriptions keep working.
    """
    return subscription_service.deactivate_plan(session, plan_id)


# -------- Meals & curry options --------


@router.get("/meals", response_model=list[MealRead])
def list_all_meals(session: Session = Depends(get_session)):
    """
    Full catalogue including unavailable meals.
    """
    return meal_service.list_meals(session, include_unavailable=True, limit=1000)


@router.post("/meals", response_model=MealRead, status_code=status.HTTP_201_CREATED)
def create_meal(payload: MealCreate, session: Session = Depends(get_session)):
    return meal_service.create_meal(session, payload)


@router.patch("/meals/{meal_id}", response_model=MealRead)
def update_meal(
    meal_id: int,
    payload: MealUpdate,
    session: Session = Depends(get_session),
):
    return meal_service.update_meal(session, meal_id, payload)


@router.delete("/meals/{meal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meal(meal_id: int, session: Session = Depends(get_session)):
    meal_service.delete_meal(session, meal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/meals/{meal_id}/image", response_model=MealRead)
def upload_meal_image(
    meal_id: int,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    """
    Upload a new image for the meal.

    - Accepts JPEG, PNG, WEBP (max 5MB).
    - Replaces any previous image.
    """
    if not file.content_type:
        raise ValidationError("Missing content-type for uploaded file")

    file_bytes = file.file.read()
    return meal_service.set_image(
        session=session,
        meal_id=meal_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
    )


@router.post(
    "/curry-options",
    response_model=CurryOptionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_curry_option(payload: CurryOptionCreate, session: Session = Depends(get_session)):
    return meal_service.create_option(session, payload)


@router.patch("/curry-options/{option_id}", response_model=CurryOptionRead)
def update_curry_option(
    option_id: int,
    payload: CurryOptionUpdate,
    session: Session = Depends(get_session),
):
    return meal_service.update_option(session, option_id, payload)


@router.delete("/curry-options/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_curry_option(option_id: int, session: Session = Depends(get_session)):
    meal_service.delete_option(session, option_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------- Locations --------


@router.post("/locations", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
def create_location(payload: LocationCreate, session: Session = Depends(get_session)):
    return address_service.create_location(session, payload)
