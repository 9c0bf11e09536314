# tests/test_analytics.py
import pytest

from app.core.clock import today_local
from app.services.stats_service import growth_percent
from conftest import API, add_to_cart, cart_payment, place_order, subscribe


def test_growth_percent():
    assert growth_percent(150, 100) == 50.0
    assert growth_percent(50, 100) == -50.0
    assert growth_percent(10, 0) == 100.0
    assert growth_percent(0, 0) == 0.0


def test_analytics_is_admin_only(client, user, manager):
    assert client.get(f"{API}/analytics").status_code == 401
    assert client.get(f"{API}/analytics", headers=user["headers"]).status_code == 403
    assert client.get(f"{API}/analytics", headers=manager["headers"]).status_code == 403


def test_unknown_range_is_rejected(client, admin):
    resp = client.get(f"{API}/analytics", params={"range": "decade"}, headers=admin["headers"])
    assert resp.status_code == 400


def test_empty_dashboard(client, admin):
    body = client.get(f"{API}/analytics", params={"range": "7days"}, headers=admin["headers"]).json()
    assert body["total_revenue"] == 0.0
    assert body["total_orders"] == 0
    assert body["average_order_value"] == 0.0
    assert body["end_date"] == today_local().isoformat()
    assert len(body["daily_revenue"]) == 8
    assert all(d["revenue"] == 0.0 for d in body["daily_revenue"])


@pytest.mark.parametrize("range_key", ["7days", "30days", "90days", "year"])
def test_revenue_counts_only_paid_orders(client, admin, user, meal, plan, range_key):
    add_to_cart(client, user, meal["id"], quantity=2)
    place_order(client, user, payment=cart_payment(client, user))
    add_to_cart(client, user, meal["id"], quantity=5)
    place_order(client, user)  # pending, not revenue
    subscribe(client, user, plan["id"], today_local())

    body = client.get(
        f"{API}/analytics", params={"range": range_key}, headers=admin["headers"]
    ).json()

    assert body["range"] == range_key
    assert body["total_revenue"] == 240.0
    assert body["total_orders"] == 1
    assert body["average_order_value"] == 240.0
    assert sum(d["revenue"] for d in body["daily_revenue"]) == 240.0
    assert body["daily_revenue"][-1]["order_count"] == 1

    assert body["top_meals"] == [
        {"meal_id": meal["id"], "name": "Ragi Mudde", "total_quantity": 2, "total_revenue": 240.0}
    ]
    statuses = {s["status"]: s["count"] for s in body["order_status_distribution"]}
    assert statuses == {"confirmed": 1, "pending": 1}

    assert body["active_subscriptions"] == 1
    assert body["subscriptions_by_plan"] == [{"plan": "Millet Monthly", "total": 1, "active": 1}]
    # asha is the only customer; staff accounts are not counted
    assert body["new_customers"] == 1
