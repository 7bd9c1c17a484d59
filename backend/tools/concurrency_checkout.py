import argparse
import concurrent.futures
import json
import os
import uuid

import requests

BASE = os.environ.get("ECOM_BASE", "http://127.0.0.1:8080")
API = f"{BASE}/api/v1"


def get_token(email, password="secret123"):
    # signup is allowed to fail when the account already exists
    requests.post(
        f"{API}/signup",
        json={"firstName": "Load", "lastName": "Test", "email": email, "password": password},
        timeout=10,
    )
    r = requests.post(f"{API}/login", json={"email": email, "password": password}, timeout=10)
    r.raise_for_status()
    return r.json()["token"]


def checkout_task(i, token, product_id, qty):
    headers = {"Authorization": f"Bearer {token}"}
    payload = {"items": [{"productId": product_id, "quantity": qty}]}
    try:
        r = requests.post(f"{API}/cart/checkout", json=payload, headers=headers, timeout=30)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def stock_of(product_id):
    r = requests.get(f"{API}/products/{product_id}", timeout=10)
    r.raise_for_status()
    return r.json()["quantity"]


def run(workers, product_id, qty):
    token = get_token(f"load-{uuid.uuid4().hex[:8]}@ecom-load.io")
    before = stock_of(product_id)
    print(f"Running checkout test: workers={workers}, product={product_id}, qty={qty}, stock={before}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(checkout_task, i, token, product_id, qty) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    ok = [r for r in results if r[1] == 200]
    order_ids = {json.loads(r[2])["id"] for r in ok}
    after = stock_of(product_id)
    print(f"succeeded={len(ok)} unique orders={len(order_ids)} stock {before} -> {after}")
    expected = before - len(ok) * qty
    if after != expected:
        print(f"STOCK MISMATCH: expected {expected}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire parallel checkouts at one product.")
    parser.add_argument("--product", type=int, default=1)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run(args.workers, args.product, args.qty)
