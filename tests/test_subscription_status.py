# tests/test_subscription_status.py
from datetime import date, timedelta

import pytest

from app.services.subscription_status import (
    compute_subscription_state,
    end_date_for,
    menu_day_index,
    remaining_days,
)

START = date(2025, 3, 1)


@pytest.mark.parametrize(
    "today, status, days_remaining",
    [
        (START - timedelta(days=1), "pending", 30),
        (START, "active", 30),
        (START + timedelta(days=9), "active", 21),
        (START + timedelta(days=29), "active", 1),
        (START + timedelta(days=30), "completed", 0),
    ],
)
def test_status_is_derived_from_the_window(today, status, days_remaining):
    state = compute_subscription_state(START, 30, today)
    assert state.status == status
    assert state.days_remaining == days_remaining
    assert state.end_date == date(2025, 3, 30)


def test_cancelled_overrides_everything():
    state = compute_subscription_state(START, 30, START + timedelta(days=3), cancelled=True)
    assert state.status == "cancelled"
    assert state.days_remaining == 0


def test_end_date_is_last_delivery_day():
    assert end_date_for(START, 1) == START
    assert end_date_for(date(2025, 2, 20), 10) == date(2025, 3, 1)


def test_remaining_days_counts_today_as_delivered():
    ten_days_in = START + timedelta(days=9)
    assert remaining_days(START, 30, ten_days_in) == 20
    assert remaining_days(START, 30, START - timedelta(days=5)) == 30
    assert remaining_days(START, 30, START + timedelta(days=40)) <= 0


def test_menu_rotation_wraps_weekly():
    assert menu_day_index(START, START) == 1
    assert menu_day_index(START, START + timedelta(days=6)) == 7
    assert menu_day_index(START, START + timedelta(days=7)) == 1
