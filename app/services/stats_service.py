# app/services/stats_service.py
from collections import defaultdict
from datetime import date, timedelta

from sqlmodel import Session

from app.core.clock import to_local_date, today_local, utcnow
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import (
    AnalyticsSummary,
    DailyRevenue,
    PlanSubscriptionCount,
    StatusCount,
    TopMeal,
)
from app.services import subscription_status as state

RANGE_DAYS: dict[str, int] = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "year": 365,
}


def growth_percent(current: float, previous: float) -> float:
    """
    Change vs the previous period, in percent. From zero, any gain counts as 100%.
    """
    if previous:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current else 0.0


class StatsService:
    """
    Orchestrates aggregated admin analytics.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_analytics(
        self,
        session: Session,
        range_key: str = "30days",
        top_n_meals: int = 5,
    ) -> AnalyticsSummary:
        days = RANGE_DAYS[range_key]
        now = utcnow()
        start = now - timedelta(days=days)
        prev_start = start - timedelta(days=days)

        revenue, order_count = self.repo.revenue_and_count(session, start, now)
        prev_revenue, prev_order_count = self.repo.revenue_and_count(session, prev_start, start)

        new_customers = self.repo.count_new_customers(session, start, now)
        prev_customers = self.repo.count_new_customers(session, prev_start, start)

        # Daily revenue, one entry per local day (zeros included)
        today = today_local()
        first_day = to_local_date(start)
        buckets: dict[date, list[float]] = defaultdict(lambda: [0.0, 0])
        for created_at, total in self.repo.revenue_rows(session, start, now):
            bucket = buckets[to_local_date(created_at)]
            bucket[0] += float(total or 0.0)
            bucket[1] += 1

        daily_revenue: list[DailyRevenue] = []
        day = first_day
        while day <= today:
            rev, cnt = buckets.get(day, (0.0, 0))
            daily_revenue.append(DailyRevenue(date=day, revenue=round(rev, 2), order_count=cnt))
            day += timedelta(days=1)

        top_meals = [
            TopMeal(
                meal_id=meal_id,
                name=name,
                total_quantity=int(qty or 0),
                total_revenue=round(float(meal_revenue or 0.0), 2),
            )
            for meal_id, name, qty, meal_revenue in self.repo.top_meals(
                session, start, now, limit=top_n_meals
            )
        ]

        distribution = [
            StatusCount(status=status, count=int(count or 0))
            for status, count in self.repo.status_distribution(session, start, now)
        ]

        # Subscriptions: status is derived, so count in Python
        per_plan: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        active_subscriptions = 0
        for sub in self.repo.subscription_schedules(session):
            derived = state.compute_subscription_state(
                sub.start_date, sub.duration_days, today, sub.cancelled
            )
            counts = per_plan[sub.plan]
            counts[0] += 1
            if derived.status == state.ACTIVE:
                counts[1] += 1
                active_subscriptions += 1

        return AnalyticsSummary(
            range=range_key,
            start_date=first_day,
            end_date=today,
            total_revenue=round(revenue, 2),
            total_orders=order_count,
            average_order_value=round(revenue / order_count, 2) if order_count else 0.0,
            active_subscriptions=active_subscriptions,
            new_customers=new_customers,
            revenue_growth=growth_percent(revenue, prev_revenue),
            orders_growth=growth_percent(order_count, prev_order_count),
            customers_growth=growth_percent(new_customers, prev_customers),
            daily_revenue=daily_revenue,
            top_meals=top_meals,
            order_status_distribution=distribution,
            subscriptions_by_plan=[
                PlanSubscriptionCount(plan=plan, total=total, active=active)
                for plan, (total, active) in sorted(per_plan.items())
            ],
        )
