# app/core/errors.py
"""
Application error taxonomy.

Every error a service raises on purpose is one of the classes below. They
subclass `fastapi.HTTPException` so routers can let them propagate untouched;
the handlers registered in `app.main` render them as `{"message": ...}`.

  ValidationError           400  malformed / missing input
  InvalidTransition         400  status state-machine violation
  PaymentVerificationFailed 400  Razorpay signature mismatch
  EmptyCart                 400  checkout with nothing in the cart
  NoRemainingDays           400  subscription has no days left to reschedule
  Unauthenticated           401  missing / expired token
  Forbidden                 403  role check failed
  NotFound                  404  missing entity, or one owned by someone else
  PaymentGatewayUnavailable 503  Razorpay keys not configured / API down
"""
import logging
import traceback
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, **extra: Any):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
        )
        self.extra = extra

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"


class InvalidTransition(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid status transition"


class PaymentVerificationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid payment signature"


class EmptyCart(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Your cart is empty"


class NoRemainingDays(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No remaining days in the subscription plan"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class PaymentGatewayUnavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Payment gateway not configured"


# ---------------------------------------------------------------------------
# FastAPI handlers
# ---------------------------------------------------------------------------


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    body: dict[str, Any] = {"message": str(exc.detail)}
    extra = getattr(exc, "extra", None)
    if extra:
        body.update(extra)

    if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.warning(
            "Access denied (%s) %s %s: %s",
            exc.status_code,
            request.method,
            request.url.path,
            exc.detail,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation error", "errors": errors},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)

    settings = get_settings()
    if settings.is_development:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message": str(exc) or exc.__class__.__name__,
                "stack": traceback.format_exception(exc),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Something went wrong"},
    )
