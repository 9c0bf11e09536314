# app/routers/subscriptions.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.payment_repo import PaymentIntentRepository
from app.repositories.subscription_repo import (
    SubscriptionPlanRepository,
    SubscriptionRepository,
)
from app.schemas.subscription import (
    DietaryPreference,
    PlanRead,
    PlansByPreference,
    SubscriptionCreate,
    SubscriptionModify,
    SubscriptionRead,
    SubscriptionUpdate,
)
from app.services.notification_service import dispatcher
from app.services.payment_ledger import PaymentLedger
from app.services.subscription_service import SubscriptionService

router = APIRouter(tags=["Subscriptions"])

service = SubscriptionService(
    SubscriptionPlanRepository(),
    SubscriptionRepository(),
    AddressRepository(),
    dispatcher,
    PaymentLedger(PaymentIntentRepository()),
)


# -------- Plans (public) --------


@router.get("/subscription-plans", response_model=list[PlanRead])
def list_plans(
    dietary_preference: DietaryPreference | None = None,
    session: Session = Depends(get_session),
):
    return service.list_plans(session, dietary_preference)


@router.get("/subscription-plans/grouped", response_model=PlansByPreference)
def list_plans_grouped(session: Session = Depends(get_session)):
    """
    Active plans grouped by dietary preference (veg / veg_with_egg / nonveg).
    """
    return service.plans_by_preference(session)


# -------- Subscriptions (customer) --------


@router.get("/subscriptions", response_model=list[SubscriptionRead])
def list_my_subscriptions(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.list_for_user(session, current_user.id)


@router.post(
    "/subscriptions",
    response_model=SubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_subscription(
    payload: SubscriptionCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Enroll in a plan. Price is plan price x person count.
    """
    return service.create(session, current_user, payload)


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionRead)
def get_subscription(
    subscription_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get(session, current_user.id, subscription_id)


@router.patch("/subscriptions/{subscription_id}", response_model=SubscriptionRead)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Change time slot, delivery address or person count.
    """
    return service.update(session, current_user.id, subscription_id, payload)


@router.post("/subscriptions/{subscription_id}/modify", response_model=SubscriptionRead)
def modify_subscription(
    subscription_id: int,
    payload: SubscriptionModify,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Pause and resume: undelivered days restart on `resume_date`.
    """
    return service.modify(session, current_user.id, subscription_id, payload)


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionRead)
def cancel_subscription(
    subscription_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.cancel(session, current_user.id, subscription_id)
