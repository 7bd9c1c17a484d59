from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from conftest import add_product, stock_of
from ecom.main import app
from ecom.services.auth_service import create_access_token

client = TestClient(app)

URL = "/api/v1/cart/checkout"


def cart(*lines):
    return {"items": [{"productId": pid, "quantity": qty} for pid, qty in lines]}


def test_checkout_success(auth_headers):
    pid = add_product(price="10.00", quantity=100)
    r = client.post(URL, json=cart((pid, 2)), headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 20
    assert body["message"] == "Order created successfully"
    assert body["id"] > 0
    assert stock_of(pid) == 98

    product = client.get(f"/api/v1/products/{pid}").json()
    assert product["quantity"] == 98


def test_checkout_insufficient_stock(auth_headers):
    pid = add_product(name="Tea 100g", quantity=5)
    r = client.post(URL, json=cart((pid, 10)), headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Product Tea 100g has only 5 items left"}
    assert stock_of(pid) == 5


def test_checkout_out_of_stock(auth_headers):
    pid = add_product(name="Honey Jar", quantity=0)
    r = client.post(URL, json=cart((pid, 1)), headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Product Honey Jar is out of stock"}


def test_checkout_empty_cart(auth_headers):
    r = client.post(URL, json={"items": []}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Cart is empty"}


def test_checkout_unknown_product(auth_headers):
    r = client.post(URL, json=cart((31337, 1)), headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"error": "product 31337 not found"}


def test_checkout_non_positive_quantity(auth_headers):
    pid = add_product()
    r = client.post(URL, json=cart((pid, 0)), headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "quantity must be positive"}


def test_checkout_invalid_payload(auth_headers):
    r = client.post(URL, content="invalid json", headers=dict(auth_headers, **{"Content-Type": "application/json"}))
    assert r.status_code == 400
    assert r.json()["error"].startswith("invalid payload")


def test_checkout_missing_items_field(auth_headers):
    r = client.post(URL, json={}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["error"].startswith("invalid payload")


def test_checkout_without_authorization_header():
    r = client.post(URL, json=cart((1, 1)))
    assert r.status_code == 401
    assert r.json() == {"error": "Authorization header is missing"}


def test_checkout_with_empty_token():
    r = client.post(URL, json=cart((1, 1)), headers={"Authorization": "Bearer "})
    assert r.status_code == 401
    assert r.json() == {"error": "Token is missing"}


def test_checkout_with_invalid_token():
    r = client.post(URL, json=cart((1, 1)), headers={"Authorization": "Bearer invalid_token"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


def test_checkout_with_foreign_secret():
    token = create_access_token(1, secret="someone-else")
    r = client.post(URL, json=cart((1, 1)), headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


def test_persistence_errors_are_generic():
    pid = add_product(quantity=3)
    # valid token for an account that does not exist: the order insert fails
    token = create_access_token(777)
    r = client.post(URL, json=cart((pid, 1)), headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 500
    assert r.json() == {"error": "internal server error"}
    assert stock_of(pid) == 3


def signed(claims):
    claims = dict(claims, exp=datetime.now(timezone.utc) + timedelta(minutes=5))
    return {"Authorization": f"Bearer {jwt.encode(claims, 'testsecret', algorithm='HS256')}"}


def test_checkout_token_without_user_id():
    r = client.post(URL, json=cart((1, 1)), headers=signed({}))
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token claims"}


def test_checkout_token_with_non_numeric_user_id():
    r = client.post(URL, json=cart((1, 1)), headers=signed({"userID": "abc"}))
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token claims"}
