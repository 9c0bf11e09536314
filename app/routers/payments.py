# app/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.routers.orders import service as order_service
from app.routers.subscriptions import service as subscription_service
from app.schemas.payment import (
    CreatePaymentOrder,
    PaymentConfigRead,
    PaymentFailed,
    PaymentOrderRead,
    PaymentResult,
    VerifyPayment,
)
from app.services.payment_service import PaymentService

router = APIRouter(tags=["Payments"])

service = PaymentService(
    OrderRepository(),
    SubscriptionRepository(),
    order_service,
    subscription_service,
    order_service.ledger,
)


@router.get("/payments/config", response_model=PaymentConfigRead)
def get_payment_config():
    """
    Public Razorpay key for the checkout widget.
    """
    return service.get_config()


@router.post("/payments/create-order", response_model=PaymentOrderRead)
def create_payment_order(
    payload: CreatePaymentOrder,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Create a Razorpay order for the cart, a plan, or one of the user's
    orders / subscriptions. The amount is computed server side.
    """
    return service.create_payment_order(session, current_user, payload)


@router.post("/payments/verify", response_model=PaymentResult)
def verify_payment(
    payload: VerifyPayment,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Verify the checkout signature and confirm / mark paid.
    """
    return service.verify(session, current_user, payload)


@router.post("/payments/failed", response_model=PaymentResult)
def payment_failed(
    payload: PaymentFailed,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.mark_failed(session, current_user, payload)


@router.post("/webhook/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    session: Session = Depends(get_session),
):
    """
    Razorpay server-to-server events.

    The HMAC is checked over the raw body before anything is parsed.
    """
    raw_body = await request.body()
    return await run_in_threadpool(
        service.handle_webhook, session, raw_body, x_razorpay_signature
    )
