# tests/test_payments.py
import json

import pytest
import requests

from app.core import razorpay_client
from app.core.clock import today_local
from conftest import (
    API,
    add_to_cart,
    cart_payment,
    open_payment,
    paid,
    payment_proof,
    place_order,
    sign_payment,
    sign_webhook,
    subscribe,
)


def _pending_order(client, user, meal):
    add_to_cart(client, user, meal["id"], quantity=2)
    return place_order(client, user).json()


def _webhook(client, event: dict, secret_sign=True):
    body = json.dumps(event).encode()
    headers = {"Content-Type": "application/json"}
    if secret_sign:
        headers["X-Razorpay-Signature"] = sign_webhook(body)
    return client.post(f"{API}/webhook/razorpay", content=body, headers=headers)


def _captured(entity_type, entity_id, order_id="order_gw_1", payment_id="pay_gw_1"):
    return {
        "event": "payment.captured",
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "order_id": order_id,
                    "notes": {"entity_type": entity_type, "entity_id": str(entity_id)},
                }
            }
        },
    }


def test_signature_check_is_exact():
    good = sign_payment("order_1", "pay_1")
    assert razorpay_client.verify_payment_signature("order_1", "pay_1", good)

    flipped = ("1" if good[0] == "0" else "0") + good[1:]
    assert not razorpay_client.verify_payment_signature("order_1", "pay_1", flipped)
    assert not razorpay_client.verify_payment_signature("order_1", "pay_2", good)
    assert not razorpay_client.verify_payment_signature("order_1", "pay_1", "")


def test_missing_secret_never_verifies(monkeypatch):
    settings = razorpay_client.get_settings()
    monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", None)
    assert not razorpay_client.verify_payment_signature(
        "order_1", "pay_1", sign_payment("order_1", "pay_1")
    )


def test_config_exposes_key_but_not_secret(client):
    body = client.get(f"{API}/payments/config").json()
    assert body == {"key_id": "rzp_test_key", "currency": "INR", "enabled": True}


def test_create_order_uses_stored_amount(client, user, meal, gateway):
    order = _pending_order(client, user, meal)

    resp = client.post(
        f"{API}/payments/create-order",
        json={"type": "order", "entity_id": order["id"]},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["amount"] == 24000
    assert body["razorpay_order_id"] == "order_gw_1"
    assert gateway[0]["json"]["notes"]["entity_type"] == "order"
    assert gateway[0]["timeout"] is not None

    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["razorpay_order_id"] == "order_gw_1"


def test_create_order_rejects_client_amount(client, user, meal, gateway):
    order = _pending_order(client, user, meal)
    resp = client.post(
        f"{API}/payments/create-order",
        json={"type": "order", "entity_id": order["id"], "amount": 1},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    assert gateway == []


def test_gateway_errors_are_503(client, user, meal, monkeypatch):
    order = _pending_order(client, user, meal)

    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(razorpay_client.requests, "post", boom)
    resp = client.post(
        f"{API}/payments/create-order",
        json={"type": "order", "entity_id": order["id"]},
        headers=user["headers"],
    )
    assert resp.status_code == 503


def test_verify_confirms_order(client, user, meal, gateway, channels):
    order = _pending_order(client, user, meal)
    client.post(
        f"{API}/payments/create-order",
        json={"type": "order", "entity_id": order["id"]},
        headers=user["headers"],
    )

    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "order", "entity_id": order["id"], **payment_proof("order_gw_1", "pay_9")},
        headers=user["headers"],
    )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"type": "order", "entity_id": order["id"], "status": "confirmed"}
    assert len(channels["sms"].sent) == 1


def test_verify_rejects_proof_for_another_gateway_order(client, user, meal, gateway):
    order = _pending_order(client, user, meal)
    client.post(
        f"{API}/payments/create-order",
        json={"type": "order", "entity_id": order["id"]},
        headers=user["headers"],
    )

    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "order", "entity_id": order["id"], **payment_proof("order_other", "pay_9")},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["status"] == "pending"


def test_failed_payment_then_retry(client, user, meal):
    order = _pending_order(client, user, meal)

    resp = client.post(
        f"{API}/payments/failed",
        json={"type": "order", "entity_id": order["id"], "reason": "card declined"},
        headers=user["headers"],
    )
    assert resp.json()["status"] == "payment_failed"

    # reporting twice is harmless
    resp = client.post(
        f"{API}/payments/failed",
        json={"type": "order", "entity_id": order["id"]},
        headers=user["headers"],
    )
    assert resp.status_code == 200

    proof = paid(client, user, "order", order["id"])
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "order", "entity_id": order["id"], **proof},
        headers=user["headers"],
    )
    assert resp.json()["status"] == "confirmed"


def test_subscription_payment_marks_paid(client, user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    assert sub["payment_status"] == "pending"

    proof = paid(client, user, "subscription", sub["id"])
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "subscription", "entity_id": sub["id"], **proof},
        headers=user["headers"],
    )
    assert resp.json()["status"] == "paid"


def test_subscription_payment_of_another_user_is_not_found(client, user, other_user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "subscription", "entity_id": sub["id"], **payment_proof()},
        headers=other_user["headers"],
    )
    assert resp.status_code == 404


def test_webhook_requires_valid_signature(client, user, meal):
    order = _pending_order(client, user, meal)

    resp = _webhook(client, _captured("order", order["id"]), secret_sign=False)
    assert resp.status_code == 400

    body = json.dumps(_captured("order", order["id"])).encode()
    resp = client.post(
        f"{API}/webhook/razorpay",
        content=body,
        headers={"X-Razorpay-Signature": sign_webhook(body, secret="wrong")},
    )
    assert resp.status_code == 400

    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["status"] == "pending"


def test_webhook_capture_confirms_order_once(client, user, meal, channels):
    order = _pending_order(client, user, meal)
    open_payment(client, user, "order", order["id"])

    resp = _webhook(client, _captured("order", order["id"]))
    assert resp.json() == {"status": "ok", "event": "payment.captured"}

    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["status"] == "confirmed"
    assert stored["razorpay_payment_id"] == "pay_gw_1"

    # redelivery is acknowledged without a second transition
    assert _webhook(client, _captured("order", order["id"])).status_code == 200
    assert len(channels["sms"].sent) == 1


def test_webhook_payment_failed(client, user, meal):
    order = _pending_order(client, user, meal)
    open_payment(client, user, "order", order["id"])
    event = _captured("order", order["id"])
    event["event"] = "payment.failed"

    assert _webhook(client, event).status_code == 200
    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["status"] == "payment_failed"


def test_webhook_capture_marks_subscription_paid(client, user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    open_payment(client, user, "subscription", sub["id"])

    assert _webhook(client, _captured("subscription", sub["id"])).status_code == 200
    stored = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert stored["payment_status"] == "paid"


def test_unknown_webhook_events_are_ignored(client):
    resp = _webhook(client, {"event": "refund.created", "payload": {}})
    assert resp.status_code == 200
    assert resp.json()["status"] == "ignored"


@pytest.mark.parametrize(
    "signature",
    ["é" * 64, "zz" * 32, "", "\u0000" * 64, "ä"],
)
def test_signature_of_any_shape_is_just_rejected(signature):
    assert not razorpay_client.verify_payment_signature("order_1", "pay_1", signature)
    assert not razorpay_client.verify_webhook_signature(b"{}", signature)


def test_non_ascii_signature_is_a_400(client, user, meal):
    order = _pending_order(client, user, meal)
    open_payment(client, user, "order", order["id"])

    resp = client.post(
        f"{API}/payments/verify",
        json={
            "type": "order",
            "entity_id": order["id"],
            "razorpay_order_id": "order_gw_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "é" * 64,
        },
        headers=user["headers"],
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid payment signature"


def test_proof_for_one_order_cannot_confirm_another(client, user, meal):
    cheap = _pending_order(client, user, meal)
    add_to_cart(client, user, meal["id"], quantity=5)
    pricey = place_order(client, user).json()

    proof = paid(client, user, "order", cheap["id"])
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "order", "entity_id": pricey["id"], **proof},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    stored = client.get(f"{API}/orders/{pricey['id']}", headers=user["headers"]).json()
    assert stored["status"] == "pending"

    # the proof still works for the order it was opened for
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "order", "entity_id": cheap["id"], **proof},
        headers=user["headers"],
    )
    assert resp.json()["status"] == "confirmed"


def test_order_proof_cannot_pay_a_subscription(client, user, meal, plan):
    order = _pending_order(client, user, meal)
    sub = subscribe(client, user, plan["id"], today_local()).json()

    proof = paid(client, user, "order", order["id"])
    resp = client.post(
        f"{API}/payments/verify",
        json={"type": "subscription", "entity_id": sub["id"], **proof},
        headers=user["headers"],
    )
    assert resp.status_code == 400
    stored = client.get(f"{API}/subscriptions/{sub['id']}", headers=user["headers"]).json()
    assert stored["payment_status"] == "pending"


def test_proof_of_another_customer_is_rejected(client, user, other_user, meal):
    add_to_cart(client, other_user, meal["id"])
    theirs = cart_payment(client, other_user)

    add_to_cart(client, user, meal["id"])
    resp = place_order(client, user, payment=theirs)
    assert resp.status_code == 400
    assert client.get(f"{API}/orders", headers=user["headers"]).json() == []


def test_repeated_verify_is_a_noop_for_subscriptions(client, user, plan):
    sub = subscribe(client, user, plan["id"], today_local()).json()
    proof = paid(client, user, "subscription", sub["id"])

    for _ in range(2):
        resp = client.post(
            f"{API}/payments/verify",
            json={"type": "subscription", "entity_id": sub["id"], **proof},
            headers=user["headers"],
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "paid"


def test_cart_and_plan_amounts_are_computed_server_side(client, user, meal, plan, gateway):
    add_to_cart(client, user, meal["id"], quantity=3)

    open_payment(client, user, "cart")
    open_payment(client, user, "plan", plan["id"], person_count=2)

    assert gateway[0]["json"]["amount"] == 36000
    assert gateway[1]["json"]["amount"] == 600000


def test_create_order_needs_an_entity_except_for_the_cart(client, user):
    resp = client.post(
        f"{API}/payments/create-order", json={"type": "order"}, headers=user["headers"]
    )
    assert resp.status_code == 400


def test_webhook_for_unknown_gateway_order_is_ignored(client, user, meal):
    order = _pending_order(client, user, meal)

    resp = _webhook(client, _captured("order", order["id"], order_id="order_nobody_opened"))
    assert resp.json()["status"] == "ignored"
    stored = client.get(f"{API}/orders/{order['id']}", headers=user["headers"]).json()
    assert stored["status"] == "pending"


def test_webhook_follows_the_ledger_not_the_notes(client, user, meal):
    first = _pending_order(client, user, meal)
    add_to_cart(client, user, meal["id"])
    second = place_order(client, user).json()
    open_payment(client, user, "order", first["id"])

    # notes point at the second order, the gateway order belongs to the first
    assert _webhook(client, _captured("order", second["id"])).status_code == 200

    statuses = {
        o["id"]: o["status"] for o in client.get(f"{API}/orders", headers=user["headers"]).json()
    }
    assert statuses == {first["id"]: "confirmed", second["id"]: "pending"}


def test_webhook_leaves_cart_payments_to_checkout(client, user, meal):
    add_to_cart(client, user, meal["id"])
    proof = cart_payment(client, user)

    event = _captured("cart", "", order_id=proof["razorpay_order_id"])
    assert _webhook(client, event).json()["status"] == "ok"

    resp = place_order(client, user, payment=proof)
    assert resp.status_code == 201
    assert resp.json()["status"] == "confirmed"
