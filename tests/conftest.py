# tests/conftest.py
import hashlib
import hmac
import json
import os

# Settings are read once at import time; configure before importing the app.
os.environ.update(
    {
        "ENVIRONMENT": "test",
        "STORAGE_BACKEND": "memory",
        "ENABLE_SCHEDULER": "false",
        "ACCESS_TOKEN_SECRET": "test-access-secret",
        "REFRESH_TOKEN_SECRET": "test-refresh-secret",
        "COOKIE_SECURE": "false",
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": "rzp_test_secret",
        "RAZORPAY_WEBHOOK_SECRET": "rzp_webhook_secret",
        "DEFAULT_DELIVERY_CHARGE": "0",
        "FAST2SMS_API_KEY": "",
        "SMTP_HOST": "",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.core import razorpay_client  # noqa: E402
from app.database import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.routers.auth import service as auth_service  # noqa: E402
from app.schemas.user import RegisterRequest  # noqa: E402
from app.services.notification_service import dispatcher  # noqa: E402

API = "/api"
RAZORPAY_SECRET = "rzp_test_secret"
WEBHOOK_SECRET = "rzp_webhook_secret"


def sign_payment(order_id: str, payment_id: str, secret: str = RAZORPAY_SECRET) -> str:
    return hmac.new(
        secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256
    ).hexdigest()


def sign_webhook(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def payment_proof(order_id: str = "order_rzp_1", payment_id: str = "pay_rzp_1") -> dict:
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": sign_payment(order_id, payment_id),
    }


class FakeResponse:
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


class RecordingChannel:
    def __init__(self, name: str):
        self.name = name
        self.sent: list[tuple[int, str, str]] = []

    def send(self, recipient, title, message):
        self.sent.append((recipient.user_id, title, message))


class FailingChannel:
    def __init__(self, name: str):
        self.name = name

    def send(self, recipient, title, message):
        raise RuntimeError(f"{self.name} is down")


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture(autouse=True)
def channels(monkeypatch):
    """
    Replace the outbound channels (sms / whatsapp / email) with recorders.
    The in-app channel stays real so inbox rows are written.
    """
    recorders = {name: RecordingChannel(name) for name in ("sms", "whatsapp", "email")}
    patched = {"app": dispatcher.channels["app"], **recorders}
    monkeypatch.setattr(dispatcher, "channels", patched)
    return recorders


@pytest.fixture(autouse=True)
def gateway(monkeypatch):
    """
    Razorpay REST API stand-in. Gateway orders come back as order_gw_1,
    order_gw_2, ... within a test.
    """
    calls = []

    def fake_post(url, json=None, auth=None, timeout=None):
        calls.append({"url": url, "json": json, "auth": auth, "timeout": timeout})
        return FakeResponse(
            200,
            {
                "id": f"order_gw_{len(calls)}",
                "amount": json["amount"],
                "currency": json["currency"],
                "receipt": json["receipt"],
            },
        )

    monkeypatch.setattr(razorpay_client.requests, "post", fake_post)
    return calls


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


def _make_user(username: str, role: str) -> dict:
    with Session(engine) as s:
        user = auth_service.create_user(
            s,
            RegisterRequest(
                username=username,
                email=f"{username}@example.com",
                password="password123",
                name=username.title(),
                phone="9876543210",
            ),
            role=role,
        )
        tokens = auth_service._issue(s, user)
        return {
            "id": user.id,
            "headers": {"Authorization": f"Bearer {tokens.access_token}"},
            "refresh_token": tokens.refresh_token,
        }


@pytest.fixture
def user():
    return _make_user("asha", "user")


@pytest.fixture
def other_user():
    return _make_user("ravi", "user")


@pytest.fixture
def manager():
    return _make_user("meera", "manager")


@pytest.fixture
def admin():
    return _make_user("admin", "admin")


@pytest.fixture
def meal(client, manager):
    resp = client.post(
        f"{API}/admin/meals",
        json={
            "name": "Ragi Mudde",
            "description": "Finger millet balls",
            "price": 120.0,
            "category": "main",
            "dietary_preferences": ["veg"],
        },
        headers=manager["headers"],
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def curry(client, manager, meal):
    resp = client.post(
        f"{API}/admin/curry-options",
        json={"meal_id": meal["id"], "name": "Saaru", "price_adjustment": 30.0},
        headers=manager["headers"],
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def add_to_cart(client, who, meal_id, quantity=1, curry_option_id=None, notes=None):
    resp = client.post(
        f"{API}/cart",
        json={
            "meal_id": meal_id,
            "quantity": quantity,
            "curry_option_id": curry_option_id,
            "notes": notes,
        },
        headers=who["headers"],
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def place_order(client, who, **extra):
    body = {"delivery_address": "12 MG Road, Bengaluru 560001", "payment_method": "razorpay"}
    body.update(extra)
    return client.post(f"{API}/orders", json=body, headers=who["headers"])


@pytest.fixture
def plan(client, manager):
    resp = client.post(
        f"{API}/admin/subscription-plans",
        json={
            "name": "Millet Monthly",
            "price": 3000.0,
            "duration": 30,
            "dietary_preference": "veg",
            "features": ["Lunch daily"],
            "menu_items": [
                {"day": d, "main": f"Millet bowl {d}", "sides": ["Buttermilk"]}
                for d in range(1, 8)
            ],
        },
        headers=manager["headers"],
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def subscribe(client, who, plan_id, start_date, **extra):
    body = {"plan_id": plan_id, "start_date": start_date.isoformat(), **extra}
    return client.post(f"{API}/subscriptions", json=body, headers=who["headers"])


def open_payment(client, who, purpose, entity_id=None, **extra) -> str:
    """Open a gateway order through the API; returns its id."""
    resp = client.post(
        f"{API}/payments/create-order",
        json={"type": purpose, "entity_id": entity_id, **extra},
        headers=who["headers"],
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["razorpay_order_id"]


def paid(client, who, purpose, entity_id=None, payment_id=None, **extra) -> dict:
    """Signed checkout proof for a freshly opened gateway order."""
    gateway_order = open_payment(client, who, purpose, entity_id, **extra)
    return payment_proof(gateway_order, payment_id or f"pay_{gateway_order}")


def cart_payment(client, who, **extra) -> dict:
    extra.setdefault("delivery_address", "12 MG Road, Bengaluru 560001")
    return paid(client, who, "cart", **extra)
