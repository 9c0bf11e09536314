# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.order import Order, OrderItem
from app.models.subscription import Subscription
from app.models.user import User

# Orders that never turned into money
NON_REVENUE_STATUSES = ("pending", "payment_failed", "cancelled")


class StatsRepository:
    """
    Read-only aggregated queries for the admin analytics dashboard.

    All ranges are half-open: start <= created_at < end (UTC).
    """

    def revenue_and_count(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> tuple[float, int]:
        stmt = select(
            func.coalesce(func.sum(Order.total_price), 0.0),
            func.count(Order.id),
        ).where(
            Order.created_at >= start,
            Order.created_at < end,
            Order.status.not_in(NON_REVENUE_STATUSES),
        )
        revenue, count = session.exec(stmt).one()
        return float(revenue or 0.0), int(count or 0)

    def count_new_customers(self, session: Session, start: datetime, end: datetime) -> int:
        stmt = select(func.count()).select_from(User).where(
            User.role == "user",
            User.created_at >= start,
            User.created_at < end,
        )
        value = session.exec(stmt).one()
        return int(value or 0)

    def revenue_rows(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple[datetime, float]]:
        """
        (created_at, total_price) of revenue orders; bucketed per local day
        by the service.
        """
        stmt = (
            select(Order.created_at, Order.total_price)
            .where(
                Order.created_at >= start,
                Order.created_at < end,
                Order.status.not_in(NON_REVENUE_STATUSES),
            )
            .order_by(Order.created_at)
        )
        return list(session.exec(stmt).all())

    def top_meals(
        self,
        session: Session,
        start: datetime,
        end: datetime,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Top meals by quantity sold across revenue orders.
        """
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        revenue_sum = func.coalesce(func.sum(OrderItem.line_total), 0.0)

        stmt = (
            select(
                OrderItem.meal_id,
                OrderItem.meal_name,
                qty_sum.label("total_quantity"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                Order.created_at >= start,
                Order.created_at < end,
                Order.status.not_in(NON_REVENUE_STATUSES),
            )
            .group_by(OrderItem.meal_id, OrderItem.meal_name)
            .order_by(qty_sum.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def status_distribution(
        self,
        session: Session,
        start: datetime,
        end: datetime,
    ) -> list[tuple[str, int]]:
        stmt = (
            select(Order.status, func.count(Order.id))
            .where(Order.created_at >= start, Order.created_at < end)
            .group_by(Order.status)
            .order_by(Order.status)
        )
        return list(session.exec(stmt).all())

    def subscription_schedules(self, session: Session) -> list[Subscription]:
        """
        Every subscription; active / completed is derived by the caller.
        """
        return list(session.exec(select(Subscription)).all())
