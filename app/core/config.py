# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - ACCESS_TOKEN_SECRET
      - REFRESH_TOKEN_SECRET
      - DATABASE_URL (only when STORAGE_BACKEND=database)

    Optional integrations (feature is disabled / log-only when missing):
      - RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET, RAZORPAY_WEBHOOK_SECRET
      - FAST2SMS_API_KEY
      - SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD
      - SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY
    """

    PROJECT_NAME: str = "Millet Meals API"
    API_PREFIX: str = "/api"

    # development | production
    ENVIRONMENT: str = "production"

    # Storage backend, chosen once at process start:
    #   database -> DATABASE_URL (Postgres in production)
    #   memory   -> in-process SQLite, nothing survives a restart
    STORAGE_BACKEND: Literal["database", "memory"] = "database"
    DATABASE_URL: str | None = None
    DATABASE_SSLMODE: str | None = "require"

    # JWT
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    COOKIE_SECURE: bool = True

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    # All day-granularity business dates are evaluated in this zone
    TIMEZONE: str = "Asia/Kolkata"

    DEFAULT_DELIVERY_CHARGE: float = 0.0

    # Razorpay
    RAZORPAY_KEY_ID: str | None = None
    RAZORPAY_KEY_SECRET: str | None = None
    RAZORPAY_WEBHOOK_SECRET: str | None = None
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"
    PAYMENT_CURRENCY: str = "INR"

    # Timeout applied to every outbound HTTP call
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Fast2SMS
    FAST2SMS_API_KEY: str | None = None
    FAST2SMS_SENDER_ID: str = "MILLETS"
    FAST2SMS_ROUTE: str = "q"
    FAST2SMS_API_URL: str = "https://www.fast2sms.com/dev/bulkV2"
    FAST2SMS_WHATSAPP_URL: str = "https://www.fast2sms.com/dev/whatsapp"

    # SMTP
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Millet Meals"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    # Supabase Storage (meal images)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_BUCKET: str = "assets"

    # Background sweeps
    ENABLE_SCHEDULER: bool = True
    SUBSCRIPTION_SWEEP_INTERVAL_SECONDS: int = 60 * 60
    DAILY_NOTIFICATION_TIME: str = "15:30"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
