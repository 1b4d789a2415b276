import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import argparse
import concurrent.futures

import requests

BASE = os.environ.get("STOREFRONT_BASE", "http://127.0.0.1:8000")


def prepare_user(user_id, product_id, qty):
    """Give a user an address pair and a cart holding qty units of the product."""
    headers = {"X-User-Id": str(user_id)}
    addr = {
        "address_line1": f"{user_id} Test Lane",
        "city": "Testville",
        "state_province": "TS",
        "postal_code": "00000",
        "country": "US",
    }
    r = requests.post(f"{BASE}/api/addresses", json=addr, headers=headers, timeout=10)
    r.raise_for_status()
    address_id = r.json()["id"]
    requests.delete(f"{BASE}/api/cart", headers=headers, timeout=10).raise_for_status()
    r = requests.post(
        f"{BASE}/api/cart/items",
        json={"product_id": product_id, "quantity": qty},
        headers=headers,
        timeout=10,
    )
    r.raise_for_status()
    return address_id


def checkout_task(user_id, address_id):
    headers = {"X-User-Id": str(user_id)}
    payload = {"shipping_address_id": address_id, "billing_address_id": address_id}
    try:
        r = requests.post(f"{BASE}/api/checkout", json=payload, headers=headers, timeout=30)
        return (user_id, r.status_code, r.text)
    except requests.RequestException as e:
        return (user_id, "ERR", str(e))


def run(workers, product_id, qty, first_user):
    users = list(range(first_user, first_user + workers))
    print(f"Preparing {workers} carts for product={product_id} qty={qty}")
    addresses = {u: prepare_user(u, product_id, qty) for u in users}

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(checkout_task, u, addresses[u]) for u in users]
        results = [f.result() for f in futures]

    for r in results:
        print(r)
    ok = [r for r in results if r[1] == 201]
    conflicts = [r for r in results if r[1] == 409]
    print(f"succeeded={len(ok)} insufficient_stock={len(conflicts)} other={len(results) - len(ok) - len(conflicts)}")

    r = requests.get(f"{BASE}/api/products/{product_id}/price", timeout=10)
    print("price check:", r.status_code, r.text)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent checkout test against a running server.")
    parser.add_argument("--product", type=int, required=True)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    parser.add_argument("--first-user", type=int, default=1000)
    args = parser.parse_args()
    run(args.workers, args.product, args.qty, args.first_user)
