# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.errors import (
    http_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from app.database import create_db_and_tables

# Import models so SQLModel metadata is populated before create_all()
from app.models import address as _address_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import counter as _counter_models  # noqa: F401
from app.models import meal as _meal_models  # noqa: F401
from app.models import notification as _notification_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import payment as _payment_models  # noqa: F401
from app.models import subscription as _subscription_models  # noqa: F401
from app.models import user as _user_models  # noqa: F401

# Routers
from app.routers.addresses import router as addresses_router
from app.routers.admin import router as admin_router
from app.routers.analytics import router as analytics_router
from app.routers.auth import router as auth_router
from app.routers.cart import router as cart_router
from app.routers.meals import router as meals_router
from app.routers.notifications import router as notifications_router
from app.routers.orders import router as orders_router
from app.routers.payments import router as payments_router
from app.routers.subscriptions import router as subscriptions_router
from app.routers.users import router as users_router
from app.tasks.scheduler import start_scheduler, stop_scheduler

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.is_development else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Start background sweeps (unless ENABLE_SCHEDULER=false).

    Shutdown:
      - Cancel background sweeps.
    """
    logger.info("Startup: preparing %s storage...", settings.STORAGE_BACKEND)
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error("Startup: DB connection FAILED: %s", e)
        raise

    tasks = start_scheduler() if settings.ENABLE_SCHEDULER else []
    yield
    await stop_scheduler(tasks)


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

for router in (
    auth_router,
    users_router,
    meals_router,
    cart_router,
    addresses_router,
    orders_router,
    subscriptions_router,
    payments_router,
    notifications_router,
    admin_router,
    analytics_router,
):
    app.include_router(router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "millet-meals-backend"}
