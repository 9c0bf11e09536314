# app/services/subscription_status.py
"""
Subscription state derivation.

A subscription stores only (start_date, duration_days, cancelled). Its status,
last delivery day and days remaining are computed from those on every read:

  cancelled                                   -> "cancelled"
  today <  start_date                         -> "pending"
  start_date <= today < start_date + duration -> "active"
  otherwise                                   -> "completed"

`end_date` is the last delivery day: start_date + duration_days - 1.

Everything here is pure; callers pass `today` in the service timezone
(see app.core.clock.today_local).
"""
from dataclasses import dataclass
from datetime import date, timedelta

PENDING = "pending"
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class SubscriptionState:
    status: str
    end_date: date
    days_remaining: int


def end_date_for(start_date: date, duration_days: int) -> date:
    return start_date + timedelta(days=duration_days - 1)


def compute_subscription_state(
    start_date: date,
    duration_days: int,
    today: date,
    cancelled: bool = False,
) -> SubscriptionState:
    end_date = end_date_for(start_date, duration_days)
    window_end = start_date + timedelta(days=duration_days)

    if cancelled:
        return SubscriptionState(CANCELLED, end_date, 0)

    if today < start_date:
        return SubscriptionState(PENDING, end_date, duration_days)

    if today < window_end:
        return SubscriptionState(ACTIVE, end_date, (window_end - today).days)

    return SubscriptionState(COMPLETED, end_date, 0)


def delivered_days(start_date: date, today: date) -> int:
    """
    Days already served, counting today when the window has begun.
    """
    return max(0, (today - start_date).days + 1)


def remaining_days(start_date: date, duration_days: int, today: date) -> int:
    return duration_days - delivered_days(start_date, today)


def menu_day_index(start_date: date, today: date, cycle: int = 7) -> int:
    """
    1-based position of `today` in a plan's weekly menu rotation.
    """
    return (today - start_date).days % cycle + 1
