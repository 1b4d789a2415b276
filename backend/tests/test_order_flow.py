from decimal import Decimal

from fastapi.testclient import TestClient

from conftest import stock_of
from storefront.main import app

client = TestClient(app)

ALICE = {"X-User-Id": "1"}
BOB = {"X-User-Id": "2"}


def _address(headers, address_type="shipping"):
    r = client.post(
        "/api/addresses",
        json={
            "full_name": "Test Buyer",
            "address_line1": "12 Goldsmith Lane",
            "city": "Dubai",
            "state_province": "Dubai",
            "postal_code": "00000",
            "country": "AE",
            "address_type": address_type,
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


def _checkout(headers, shipping_id, billing_id, **extra):
    return client.post(
        "/api/checkout",
        json={"shipping_address_id": shipping_id, "billing_address_id": billing_id, **extra},
        headers=headers,
    )


def test_full_order_flow(make_product):
    ring = make_product(base_price="320.00", stock=3)
    chain = make_product(base_price="150.50", stock=5)
    ship = _address(ALICE)
    bill = _address(ALICE, "billing")

    assert client.post("/api/cart/items", json={"product_id": ring, "quantity": 1}, headers=ALICE).status_code == 200
    assert client.post("/api/cart/items", json={"product_id": chain, "quantity": 2}, headers=ALICE).status_code == 200

    r = _checkout(ALICE, ship, bill, shipping_amount="20.00", shipping_method="express")
    assert r.status_code == 201, r.text
    placed = r.json()
    assert placed["status"] == "pending_payment"
    assert Decimal(placed["total_amount"]) == Decimal("641.00")
    assert stock_of(ring) == 2
    assert stock_of(chain) == 3
    assert client.get("/api/cart", headers=ALICE).json()["items"] == []

    order_id = placed["order_id"]
    r = client.get(f"/api/orders/{order_id}", headers=ALICE)
    assert r.status_code == 200
    detail = r.json()
    assert detail["shipping_method"] == "express"
    assert detail["shipping_address_snapshot"]["city"] == "Dubai"
    assert sorted((i["product_id"], i["quantity"]) for i in detail["items"]) == [(ring, 1), (chain, 2)]
    assert [p["status"] for p in detail["payments"]] == ["pending"]

    # another user cannot see it
    assert client.get(f"/api/orders/{order_id}", headers=BOB).status_code == 404

    r = client.post(
        f"/api/payments/{order_id}/{placed['payment_id']}/outcome", json={"outcome": "succeeded"}
    )
    assert r.status_code == 200
    assert r.json()["order_status"] == "processing"

    r = client.post(f"/api/admin/orders/{order_id}/status", json={"status": "shipped"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "tracking_number_required"

    r = client.post(
        f"/api/admin/orders/{order_id}/status",
        json={"status": "shipped", "tracking_number": "DHL-42"},
    )
    assert r.status_code == 200
    assert r.json()["tracking_number"] == "DHL-42"

    r = client.post(f"/api/orders/{order_id}/cancel", headers=ALICE)
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert (detail["current"], detail["requested"]) == ("shipped", "cancelled")

    r = client.post(f"/api/admin/orders/{order_id}/status", json={"status": "delivered"})
    assert r.status_code == 200

    r = client.get("/api/orders", headers=ALICE, params={"status": "delivered"})
    assert [o["id"] for o in r.json()] == [order_id]


def test_cancel_and_payment_retry_over_http(make_product):
    pid = make_product(base_price="99.00", stock=2)
    addr = _address(BOB)
    client.post("/api/cart/items", json={"product_id": pid, "quantity": 2}, headers=BOB)

    r = _checkout(BOB, addr, addr)
    assert r.status_code == 201
    order_id, payment_id = r.json()["order_id"], r.json()["payment_id"]
    assert stock_of(pid) == 0

    r = client.post(f"/api/payments/{order_id}/{payment_id}/outcome", json={"outcome": "failed"})
    assert r.json()["order_status"] == "pending_payment"

    r = client.post(f"/api/orders/{order_id}/payments", json={}, headers=BOB)
    assert r.status_code == 201
    assert r.json()["status"] == "pending"
    assert r.json()["id"] != payment_id

    r = client.post(f"/api/orders/{order_id}/payments", json={}, headers=BOB)
    assert r.status_code == 409

    r = client.post(f"/api/orders/{order_id}/cancel", headers=BOB)
    assert r.status_code == 200
    assert r.json()["restored_stock"] == [{"product_id": pid, "quantity": 2}]
    assert stock_of(pid) == 2


def test_checkout_error_codes(make_product):
    pid = make_product(stock=1)
    mine = _address(ALICE)
    theirs = _address(BOB)

    r = _checkout(ALICE, mine, mine)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "empty_cart"

    client.post("/api/cart/items", json={"product_id": pid, "quantity": 2}, headers=ALICE)
    r = _checkout(ALICE, mine, mine)
    assert r.status_code == 409
    assert r.json()["detail"]["product_ids"] == [pid]

    client.put(f"/api/cart/items/{pid}", json={"quantity": 1}, headers=ALICE)
    assert _checkout(ALICE, mine, theirs).status_code == 403
    assert _checkout(ALICE, mine, 9999).status_code == 404
    assert _checkout(ALICE, mine, mine, tax_amount="-1").status_code == 422

    assert stock_of(pid) == 1
    assert _checkout(ALICE, mine, mine).status_code == 201


def test_unknown_order_endpoints():
    assert client.get("/api/orders/999", headers=ALICE).status_code == 404
    assert client.post("/api/orders/999/cancel", headers=ALICE).status_code == 404
    assert client.post("/api/payments/999/1/outcome", json={"outcome": "succeeded"}).status_code == 404
    assert client.post("/api/admin/orders/999/status", json={"status": "shipped"}).status_code == 404
    assert client.post("/api/payments/1/1/outcome", json={"outcome": "refunded"}).status_code == 422


def test_admin_lists_orders_across_users(make_product):
    pid = make_product(base_price="10.00", stock=20)
    placed = []
    for headers, qty in ((ALICE, 1), (BOB, 2), (ALICE, 3)):
        addr = _address(headers)
        client.post("/api/cart/items", json={"product_id": pid, "quantity": qty}, headers=headers)
        r = _checkout(headers, addr, addr)
        assert r.status_code == 201
        placed.append(r.json()["order_id"])
    client.post(f"/api/orders/{placed[1]}/cancel", headers=BOB)

    r = client.get("/api/admin/orders")
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    assert body["pages"] == 1
    assert {o["user_id"] for o in body["items"]} == {1, 2}

    r = client.get("/api/admin/orders", params={"sort_by": "total_amount", "sort_direction": "asc"})
    assert [Decimal(o["total_amount"]) for o in r.json()["items"]] == [
        Decimal("10.00"),
        Decimal("20.00"),
        Decimal("30.00"),
    ]

    r = client.get("/api/admin/orders", params={"sort_by": "id", "limit": 2, "page": 2})
    body = r.json()
    assert (body["total"], body["pages"], body["page"]) == (3, 2, 2)
    assert [o["id"] for o in body["items"]] == [min(placed)]

    r = client.get("/api/admin/orders", params={"status": "cancelled"})
    assert [o["id"] for o in r.json()["items"]] == [placed[1]]
    assert r.json()["items"][0]["payments"][0]["status"] == "failed"

    assert client.get("/api/admin/orders", params={"sort_by": "user_id"}).status_code == 422
    assert client.get("/api/admin/orders", params={"page": 0}).status_code == 422
