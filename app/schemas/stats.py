# app/schemas/stats.py
from datetime import date
from typing import Literal

from sqlmodel import SQLModel

AnalyticsRange = Literal["7days", "30days", "90days", "year"]


class DailyRevenue(SQLModel):
    """
    Revenue per calendar day (service timezone).
    """

    date: date
    revenue: float
    order_count: int


class TopMeal(SQLModel):
    meal_id: int
    name: str
    total_quantity: int
    total_revenue: float


class StatusCount(SQLModel):
    status: str
    count: int


class PlanSubscriptionCount(SQLModel):
    plan: str
    total: int
    active: int


class AnalyticsSummary(SQLModel):
    """
    Full payload for the admin analytics dashboard.

    *_growth fields are percentages vs the previous period of the same length.
    """

    range: AnalyticsRange
    start_date: date
    end_date: date

    total_revenue: float
    total_orders: int
    average_order_value: float
    active_subscriptions: int
    new_customers: int

    revenue_growth: float
    orders_growth: float
    customers_growth: float

    daily_revenue: list[DailyRevenue]
    top_meals: list[TopMeal]
    order_status_distribution: list[StatusCount]
    subscriptions_by_plan: list[PlanSubscriptionCount]
