# tests/test_addresses.py
from conftest import API, add_to_cart, place_order

ADDRESS = {
    "name": "Asha",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


def _create(client, who, **overrides):
    resp = client.post(f"{API}/addresses", json={**ADDRESS, **overrides}, headers=who["headers"])
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_first_address_becomes_default(client, user):
    first = _create(client, user)
    second = _create(client, user, address_line1="4 Church Street")
    assert first["is_default"] is True
    assert second["is_default"] is False


def test_only_one_default(client, user):
    first = _create(client, user)
    second = _create(client, user, address_line1="4 Church Street", is_default=True)

    listed = client.get(f"{API}/addresses", headers=user["headers"]).json()
    assert [a["id"] for a in listed if a["is_default"]] == [second["id"]]

    client.post(f"{API}/addresses/{first['id']}/default", headers=user["headers"])
    listed = client.get(f"{API}/addresses", headers=user["headers"]).json()
    assert listed[0]["id"] == first["id"]
    assert [a["is_default"] for a in listed] == [True, False]


def test_default_cannot_simply_be_unset(client, user):
    first = _create(client, user)
    resp = client.patch(
        f"{API}/addresses/{first['id']}", json={"is_default": False}, headers=user["headers"]
    )
    assert resp.status_code == 400


def test_deleting_default_promotes_another(client, user):
    first = _create(client, user)
    second = _create(client, user, address_line1="4 Church Street")

    assert client.delete(f"{API}/addresses/{first['id']}", headers=user["headers"]).status_code == 204
    listed = client.get(f"{API}/addresses", headers=user["headers"]).json()
    assert [(a["id"], a["is_default"]) for a in listed] == [(second["id"], True)]


def test_addresses_are_private(client, user, other_user):
    mine = _create(client, user)
    assert client.patch(
        f"{API}/addresses/{mine['id']}", json={"city": "Mysuru"}, headers=other_user["headers"]
    ).status_code == 404
    assert client.delete(f"{API}/addresses/{mine['id']}", headers=other_user["headers"]).status_code == 404


def test_order_to_saved_address(client, user, other_user, meal):
    mine = _create(client, user)
    add_to_cart(client, user, meal["id"])

    resp = client.post(
        f"{API}/orders",
        json={"delivery_address_id": mine["id"], "payment_method": "cod"},
        headers=user["headers"],
    )
    assert resp.status_code == 201
    order = resp.json()
    assert order["delivery_address_id"] == mine["id"]
    assert "12 MG Road" in order["delivery_address"]
    assert "560001" in order["delivery_address"]

    add_to_cart(client, other_user, meal["id"])
    resp = place_order(client, other_user, delivery_address_id=mine["id"])
    assert resp.status_code == 404


def test_locations(client, manager, user):
    resp = client.post(
        f"{API}/admin/locations",
        json={"area": "Indiranagar", "pincode": "560038", "delivery_fee": 25},
        headers=manager["headers"],
    )
    assert resp.status_code == 201

    dup = client.post(
        f"{API}/admin/locations",
        json={"area": "HAL", "pincode": "560038"},
        headers=manager["headers"],
    )
    assert dup.status_code == 400

    assert client.post(
        f"{API}/admin/locations", json={"area": "X", "pincode": "560001"}, headers=user["headers"]
    ).status_code == 403

    assert [loc["pincode"] for loc in client.get(f"{API}/locations").json()] == ["560038"]
