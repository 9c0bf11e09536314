# tests/test_meals.py
from typing import get_type_hints

from app.core import storage_utils
from app.models.meal import CurryOption
from app.repositories.meal_repo import MealRepository
from app.services import meal_service as meal_service_module
from conftest import API, add_to_cart


def test_catalogue_is_public(client, meal, curry):
    meals = client.get(f"{API}/meals").json()
    assert [m["name"] for m in meals] == ["Ragi Mudde"]

    detail = client.get(f"{API}/meals/{meal['id']}").json()
    assert [o["name"] for o in detail["curry_options"]] == ["Saaru"]

    assert client.get(f"{API}/meals/{meal['id']}/curry-options").json()[0]["price_adjustment"] == 30.0
    assert len(client.get(f"{API}/curry-options").json()) == 1


def test_meal_filters(client, manager, meal):
    client.post(
        f"{API}/admin/meals",
        json={
            "name": "Egg Millet Fried Rice",
            "price": 150,
            "category": "rice",
            "dietary_preferences": ["veg_with_egg"],
        },
        headers=manager["headers"],
    )

    by_category = client.get(f"{API}/meals", params={"category": "rice"}).json()
    assert [m["name"] for m in by_category] == ["Egg Millet Fried Rice"]

    by_diet = client.get(f"{API}/meals", params={"dietary": "veg"}).json()
    assert [m["name"] for m in by_diet] == ["Ragi Mudde"]

    by_search = client.get(f"{API}/meals", params={"search": "ragi"}).json()
    assert [m["id"] for m in by_search] == [meal["id"]]


def test_catalogue_writes_need_staff(client, user):
    resp = client.post(
        f"{API}/admin/meals",
        json={"name": "Nope", "price": 10, "category": "x"},
        headers=user["headers"],
    )
    assert resp.status_code == 403


def test_deleting_meal_takes_options_and_cart_lines(client, manager, user, meal, curry):
    add_to_cart(client, user, meal["id"], curry_option_id=curry["id"])

    assert client.delete(
        f"{API}/admin/meals/{meal['id']}", headers=manager["headers"]
    ).status_code == 204
    assert client.get(f"{API}/meals/{meal['id']}").status_code == 404
    assert client.get(f"{API}/curry-options").json() == []
    assert client.get(f"{API}/cart", headers=user["headers"]).json()["items"] == []


def test_deleted_curry_option_keeps_cart_snapshot_price(client, manager, user, meal, curry):
    add_to_cart(client, user, meal["id"], curry_option_id=curry["id"])
    client.delete(f"{API}/admin/curry-options/{curry['id']}", headers=manager["headers"])

    line = client.get(f"{API}/cart", headers=user["headers"]).json()["items"][0]
    assert line["curry_option_name"] == "Saaru"
    assert line["line_total"] == 150.0


def test_image_upload(client, manager, meal, monkeypatch):
    uploaded = []

    def fake_upload(meal_id, data, ext, content_type):
        path = storage_utils.meal_image_path(meal_id, ext)
        uploaded.append((path, data, content_type))
        return f"https://cdn.example.com/{path}"

    monkeypatch.setattr(meal_service_module, "upload_meal_image", fake_upload)

    resp = client.post(
        f"{API}/admin/meals/{meal['id']}/image",
        files={"file": ("ragi.png", b"\x89PNG fake", "image/png")},
        headers=manager["headers"],
    )
    assert resp.status_code == 200, resp.text
    path, data, content_type = uploaded[0]
    assert path.startswith(f"meals/meal_{meal['id']}/") and path.endswith(".png")
    assert content_type == "image/png"
    assert resp.json()["image_url"] == f"https://cdn.example.com/{path}"


def test_image_upload_rejects_other_types(client, manager, meal):
    resp = client.post(
        f"{API}/admin/meals/{meal['id']}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=manager["headers"],
    )
    assert resp.status_code == 400


def test_object_path_only_matches_own_bucket():
    url = "https://proj.supabase.co/storage/v1/object/public/assets/meals/meal_1/a.png"
    assert storage_utils.object_path(url) == "meals/meal_1/a.png"
    assert storage_utils.object_path("https://elsewhere.example.com/a.png") is None


def test_a_method_named_list_does_not_shadow_list_hints():
    hints = get_type_hints(MealRepository.list_options_for_meal)
    assert hints["return"] == list[CurryOption]
