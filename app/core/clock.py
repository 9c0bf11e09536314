# app/core/clock.py
"""
Business-date helpers.

Subscription status and the daily sweeps are evaluated at day granularity
in one fixed zone (TIMEZONE, Asia/Kolkata by default), never in the
server's local zone.
"""
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from app.core.config import get_settings


def service_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_local() -> datetime:
    return datetime.now(service_zone())


def today_local() -> date:
    """Current calendar date in the service timezone."""
    return now_local().date()


def to_local_date(value: datetime) -> date:
    """
    Calendar date of a timestamp in the service timezone.
    Naive timestamps are treated as UTC (that is how they are stored).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(service_zone()).date()


def parse_hhmm(raw: str) -> time:
    hours, minutes = raw.strip().split(":", 1)
    return time(int(hours), int(minutes))
