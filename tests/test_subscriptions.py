# tests/test_subscriptions.py
from datetime import datetime, time, timedelta

from sqlmodel import Session

from app.core.clock import service_zone, today_local
from app.database import engine
from app.models.subscription import Subscription
from app.tasks.scheduler import run_daily_meal_sweep, run_subscription_sweep, seconds_until
from conftest import API, paid, subscribe


def _backdate(subscription_id: int, start_date, duration_days=None):
    with Session(engine) as s:
        sub = s.get(Subscription, subscription_id)
        sub.start_date = start_date
        if duration_days is not None:
            sub.duration_days = duration_days
        s.add(sub)
        s.commit()


def test_plans_are_public_and_grouped(client, plan, manager):
    client.post(
        f"{API}/admin/subscription-plans",
        json={"name": "Egg Plan", "price": 3500, "duration": 30, "dietary_preference": "veg_with_egg"},
        headers=manager["headers"],
    )
    assert len(client.get(f"{API}/subscription-plans").json()) == 2

    grouped = client.get(f"{API}/subscription-plans/grouped").json()
    assert [p["name"] for p in grouped["veg"]] == ["Millet Monthly"]
    assert [p["name"] for p in grouped["veg_with_egg"]] == ["Egg Plan"]
    assert grouped["nonveg"] == []


def test_deleted_plan_is_only_deactivated(client, plan, manager):
    resp = client.delete(f"{API}/admin/subscription-plans/{plan['id']}", headers=manager["headers"])
    assert resp.json()["is_active"] is False
    assert client.get(f"{API}/subscription-plans").json() == []
    assert len(client.get(f"{API}/admin/subscription-plans", headers=manager["headers"]).json()) == 1


def test_create_prices_per_person(client, user, plan):
    resp = subscribe(client, user, plan["id"], today_local() + timedelta(days=2), person_count=2)
    assert resp.status_code == 201, resp.text
    sub = resp.json()
    assert sub["price"] == 6000.0
    assert sub["status"] == "pending"
    assert sub["days_remaining"] == 30
    assert sub["duration_days"] == 30
    assert sub["time_slot"] == "12:00-14:00"


def test_start_date_cannot_be_in_the_past(client, user, plan):
    resp = subscribe(client, user, plan["id"], today_local() - timedelta(days=1))
    assert resp.status_code == 400


def test_paid_enrollment_notifies(client, user, plan, channels):
    resp = subscribe(
        client, user, plan["id"], today_local(), payment=paid(client, user, "plan", plan["id"])
    )
    assert resp.json()["payment_status"] == "paid"
    assert resp.json()["status"] == "active"
    assert [t for _, t, _ in channels["email"].sent] == ["Subscription confirmed"]


def test_modify_moves_remaining_days(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    _backdate(sub["id"], today - timedelta(days=9))

    resume = today + timedelta(days=5)
    resp = client.post(
        f"{API}/subscriptions/{sub['id']}/modify",
        json={"resume_date": resume.isoformat()},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["start_date"] == resume.isoformat()
    assert body["duration_days"] == 20
    assert body["end_date"] == (resume + timedelta(days=19)).isoformat()
    assert body["status"] == "pending"


def test_modify_without_remaining_days(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    _backdate(sub["id"], today - timedelta(days=29))

    resp = client.post(
        f"{API}/subscriptions/{sub['id']}/modify",
        json={"resume_date": (today + timedelta(days=1)).isoformat()},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "No remaining days in the subscription plan"


def test_modify_rejects_past_resume_date(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    resp = client.post(
        f"{API}/subscriptions/{sub['id']}/modify",
        json={"resume_date": (today - timedelta(days=1)).isoformat()},
        headers=user["headers"],
    )
    assert resp.status_code == 400


def test_cancel_is_final(client, user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()

    resp = client.post(f"{API}/subscriptions/{sub['id']}/cancel", headers=user["headers"])
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["days_remaining"] == 0

    assert client.post(
        f"{API}/subscriptions/{sub['id']}/cancel", headers=user["headers"]
    ).status_code == 400
    assert client.post(
        f"{API}/subscriptions/{sub['id']}/modify",
        json={"resume_date": today_local().isoformat()},
        headers=user["headers"],
    ).status_code == 400


def test_completed_subscription_cannot_be_cancelled(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    _backdate(sub["id"], today - timedelta(days=40))

    body = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert body["status"] == "completed"
    assert client.post(
        f"{API}/subscriptions/{sub['id']}/cancel", headers=user["headers"]
    ).status_code == 400


def test_other_users_subscription_looks_missing(client, user, other_user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    assert client.get(
        f"{API}/subscriptions/{sub['id']}", headers=other_user["headers"]
    ).status_code == 404
    assert client.get(f"{API}/subscriptions", headers=other_user["headers"]).json() == []


def test_renewal_extends_a_running_window(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    proof = paid(client, user, "subscription_renewal", sub["id"])

    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "subscription_renewal", "entity_id": sub["id"], **proof},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text

    body = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert body["duration_days"] == 60
    assert body["start_date"] == today.isoformat()


def test_renewal_restarts_a_finished_window(client, user, plan):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today).json()
    _backdate(sub["id"], today - timedelta(days=45))
    proof = paid(client, user, "subscription_renewal", sub["id"])

    client.post(
        f"{API}/payments/verify",
        json={"type": "subscription_renewal", "entity_id": sub["id"], **proof},
        headers=user["headers"],
    )
    body = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert body["status"] == "active"
    assert body["start_date"] == today.isoformat()
    assert body["days_remaining"] == 30


def test_status_sweep_notifies_once_per_change(client, user, plan, channels):
    today = today_local()
    sub = subscribe(client, user, plan["id"], today + timedelta(days=1)).json()

    assert run_subscription_sweep(today) == 0
    assert run_subscription_sweep(today + timedelta(days=1)) == 1
    assert run_subscription_sweep(today + timedelta(days=1)) == 0
    assert run_subscription_sweep(today + timedelta(days=31)) == 1

    titles = [t for _, t, _ in channels["sms"].sent]
    assert titles == ["Subscription active", "Subscription completed"]

    inbox = client.get(f"{API}/notifications", headers=user["headers"]).json()
    assert {n["title"] for n in inbox} == {"Subscription active", "Subscription completed"}
    assert client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()["status"] == "pending"


def test_daily_sweep_sends_todays_menu(client, user, other_user, plan, channels):
    today = today_local()
    subscribe(client, user, plan["id"], today)
    subscribe(client, other_user, plan["id"], today + timedelta(days=3))

    assert run_daily_meal_sweep(today + timedelta(days=1)) == 1
    (user_id, title, message), = channels["sms"].sent
    assert user_id == user["id"]
    assert title == "Today's meal"
    assert "Millet bowl 2" in message
    assert "Buttermilk" in message


def test_seconds_until_rolls_to_tomorrow():
    at_noon = datetime.combine(today_local(), time(12, 0), tzinfo=service_zone())
    assert seconds_until("13:30", at_noon) == 90 * 60
    assert seconds_until("11:00", at_noon) == 23 * 3600


def _renew(client, who, sub_id, proof):
    return client.post(
        f"{API}/payments/verify",
        json={"type": "subscription_renewal", "entity_id": sub_id, **proof},
        headers=who["headers"],
    )


def test_replayed_renewal_extends_only_once(client, user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    proof = paid(client, user, "subscription_renewal", sub["id"])

    for _ in range(3):
        resp = _renew(client, user, sub["id"], proof)
        assert resp.status_code == 200, resp.text
    body = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert body["duration_days"] == 60

    # a new renewal payment still goes through
    fresh = paid(client, user, "subscription_renewal", sub["id"])
    assert _renew(client, user, sub["id"], fresh).status_code == 200
    body = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert body["duration_days"] == 90


def test_renewal_payment_is_tied_to_its_subscription(client, user, plan):
    first = subscribe(client, user, plan["id"], today_local()).json()
    second = subscribe(client, user, plan["id"], today_local()).json()
    proof = paid(client, user, "subscription_renewal", first["id"])

    resp = _renew(client, user, second["id"], proof)
    assert resp.status_code == 400
    body = client.get(f"{API}/subscriptions/{second['id']}", headers=user["headers"]).json()
    assert body["duration_days"] == 30


def test_enrollment_payment_must_match_the_quoted_plan_price(client, user, plan):
    proof = paid(client, user, "plan", plan["id"], person_count=2)

    resp = subscribe(client, user, plan["id"], today_local(), payment=proof)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Paid amount does not match the current total"
    assert client.get(f"{API}/subscriptions", headers=user["headers"]).json() == []

    resp = subscribe(client, user, plan["id"], today_local(), person_count=2, payment=proof)
    assert resp.status_code == 201, resp.text
    assert resp.json()["price"] == 6000.0


def test_enrollment_payment_cannot_be_reused(client, user, plan):
    proof = paid(client, user, "plan", plan["id"])
    assert subscribe(client, user, plan["id"], today_local(), payment=proof).status_code == 201

    resp = subscribe(client, user, plan["id"], today_local(), payment=proof)
    assert resp.status_code == 400
    assert len(client.get(f"{API}/subscriptions", headers=user["headers"]).json()) == 1
