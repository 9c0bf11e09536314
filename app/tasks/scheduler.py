# app/tasks/scheduler.py
"""
Background sweeps, started from the app lifespan.

  - subscription sweep (every SUBSCRIPTION_SWEEP_INTERVAL_SECONDS):
    tells customers when a subscription starts or completes, once per change
  - daily meal sweep (at DAILY_NOTIFICATION_TIME, service timezone):
    sends every active subscriber the meal of the day from the plan menu

Each sweep is a plain function over its own Session so it can be called
directly (tests, cron); the loops only schedule them on a worker thread.
"""
import asyncio
import logging
from datetime import date, datetime, timedelta

from sqlmodel import Session

from app.core.clock import now_local, parse_hhmm, today_local
from app.core.config import get_settings
from app.database import engine
from app.repositories.subscription_repo import (
    SubscriptionPlanRepository,
    SubscriptionRepository,
)
from app.repositories.user_repo import UserRepository
from app.services import subscription_status as state
from app.services.notification_service import Recipient, dispatcher

logger = logging.getLogger(__name__)

subscription_repo = SubscriptionRepository()
plan_repo = SubscriptionPlanRepository()
user_repo = UserRepository()

STATUS_NOTICES: dict[str, tuple[str, str]] = {
    state.ACTIVE: (
        "Subscription active",
        "Your {plan} subscription is active. First delivery today, last on {end:%d %b %Y}.",
    ),
    state.COMPLETED: (
        "Subscription completed",
        "Your {plan} subscription has completed. Renew any time from your account.",
    ),
}


def run_subscription_sweep(today: date | None = None) -> int:
    """
    Notify each subscription's owner once per derived status change.

    notified_status is claimed with a conditional update before sending, so
    overlapping sweeps never notify twice.

    Returns:
        Number of notifications sent.
    """
    today = today or today_local()
    sent = 0

    with Session(engine) as session:
        for sub in subscription_repo.list_not_cancelled(session):
            derived = state.compute_subscription_state(
                sub.start_date, sub.duration_days, today, sub.cancelled
            )
            if derived.status == sub.notified_status or derived.status not in STATUS_NOTICES:
                continue

            claimed = subscription_repo.set_notified_status(
                session, sub.id, sub.notified_status, derived.status
            )
            session.commit()
            if not claimed:
                continue

            user = user_repo.get_by_id(session, sub.user_id)
            if user is None:
                continue

            title, body = STATUS_NOTICES[derived.status]
            dispatcher.notify(
                Recipient.from_user(user),
                ("app", "sms", "email"),
                title,
                body.format(plan=sub.plan, end=derived.end_date),
            )
            sent += 1

    logger.info("Subscription sweep for %s: %s notifications", today, sent)
    return sent


def meal_of_the_day(menu_items: list[dict], start_date: date, today: date) -> dict | None:
    if not menu_items:
        return None
    day = state.menu_day_index(start_date, today)
    for item in menu_items:
        if item.get("day") == day:
            return item
    return None


def run_daily_meal_sweep(today: date | None = None) -> int:
    """
    Send today's menu to every active subscriber.

    Returns:
        Number of subscribers notified.
    """
    today = today or today_local()
    sent = 0

    with Session(engine) as session:
        plans: dict[int, list[dict]] = {}
        for sub in subscription_repo.list_not_cancelled(session):
            derived = state.compute_subscription_state(
                sub.start_date, sub.duration_days, today, sub.cancelled
            )
            if derived.status != state.ACTIVE:
                continue

            if sub.plan_id not in plans:
                plan = plan_repo.get_by_id(session, sub.plan_id)
                plans[sub.plan_id] = plan.menu_items if plan else []

            meal = meal_of_the_day(plans[sub.plan_id], sub.start_date, today)
            user = user_repo.get_by_id(session, sub.user_id)
            if meal is None or user is None:
                continue

            sides = ", ".join(meal.get("sides") or [])
            message = f"Today's {sub.plan} meal: {meal.get('main')}"
            if sides:
                message += f" with {sides}"
            if sub.time_slot:
                message += f". Delivery slot {sub.time_slot}"
            message += f". {derived.days_remaining} day(s) left in your plan."

            dispatcher.notify(
                Recipient.from_user(user),
                ("app", "sms", "email"),
                "Today's meal",
                message,
            )
            sent += 1

    logger.info("Daily meal sweep for %s: %s subscribers", today, sent)
    return sent


def seconds_until(target_hhmm: str, now: datetime) -> float:
    """
    Seconds from `now` to the next occurrence of HH:MM in now's timezone.
    """
    target = datetime.combine(now.date(), parse_hhmm(target_hhmm), tzinfo=now.tzinfo)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def _subscription_loop(interval: int) -> None:
    while True:
        try:
            await asyncio.to_thread(run_subscription_sweep)
        except Exception:
            logger.exception("Subscription sweep failed")
        await asyncio.sleep(interval)


async def _daily_loop(at: str) -> None:
    while True:
        await asyncio.sleep(seconds_until(at, now_local()))
        try:
            await asyncio.to_thread(run_daily_meal_sweep)
        except Exception:
            logger.exception("Daily meal sweep failed")


def start_scheduler() -> list[asyncio.Task]:
    settings = get_settings()
    logger.info(
        "Scheduler started: subscription sweep every %ss, daily meals at %s",
        settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS,
        settings.DAILY_NOTIFICATION_TIME,
    )
    return [
        asyncio.create_task(_subscription_loop(settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS)),
        asyncio.create_task(_daily_loop(settings.DAILY_NOTIFICATION_TIME)),
    ]


async def stop_scheduler(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
