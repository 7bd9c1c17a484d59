import time

from fastapi.testclient import TestClient

from conftest import add_product, foreign_write_lock
from ecom.main import app

client = TestClient(app)

NEW_PRODUCT = {
    "name": "Coffee 200g",
    "description": "Medium roast",
    "price": 6.5,
    "image": "coffee.png",
    "quantity": 12,
}


def test_list_products():
    pid = add_product(name="Test Coffee", price="4.99", quantity=10)
    res = client.get("/api/v1/products")
    assert res.status_code == 200
    body = res.json()
    assert isinstance(body, list)
    found = next(p for p in body if p["id"] == pid)
    assert found["name"] == "Test Coffee"
    assert found["price"] == 4.99
    assert found["quantity"] == 10
    assert "createdAt" in found


def test_get_product_repeatable():
    pid = add_product()
    first = client.get(f"/api/v1/products/{pid}")
    second = client.get(f"/api/v1/products/{pid}")
    assert first.status_code == 200
    assert first.json() == second.json()


def test_get_missing_product():
    res = client.get("/api/v1/products/9999")
    assert res.status_code == 404
    assert res.json() == {"error": "product not found"}


def test_get_product_bad_id():
    res = client.get("/api/v1/products/abc")
    assert res.status_code == 400
    assert res.json()["error"].startswith("invalid payload")


def test_create_product():
    res = client.post("/api/v1/products", json=NEW_PRODUCT)
    assert res.status_code == 201
    body = res.json()
    assert body["message"] == "Product created successfully"

    got = client.get(f"/api/v1/products/{body['id']}").json()
    assert got["name"] == "Coffee 200g"
    assert got["quantity"] == 12


def test_create_product_requires_all_fields():
    payload = dict(NEW_PRODUCT)
    del payload["image"]
    res = client.post("/api/v1/products", json=payload)
    assert res.status_code == 400
    assert "error" in res.json()


def test_create_product_rejects_negative_quantity():
    res = client.post("/api/v1/products", json=dict(NEW_PRODUCT, quantity=-1))
    assert res.status_code == 400


def test_reads_are_not_blocked_by_a_checkout_in_progress():
    pid = add_product(name="Oolong", quantity=7)
    with foreign_write_lock():
        started = time.monotonic()
        listed = client.get("/api/v1/products")
        single = client.get(f"/api/v1/products/{pid}")
        elapsed = time.monotonic() - started
    assert listed.status_code == 200
    assert single.status_code == 200
    assert single.json()["quantity"] == 7
    assert elapsed < 5
