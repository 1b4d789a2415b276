from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.main import app
from storefront.services.errors import (
    GoldPriceNotFound,
    InvalidGoldPrice,
    PriceUnavailable,
    ProductNotFound,
)
from storefront.services.pricing_service import PricingService, karat_purity

client = TestClient(app)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_plain_product_costs_its_base_price(db, make_product):
    pid = make_product(base_price="49.90")
    quote = PricingService(db).resolve(pid)
    assert quote.unit_price == Decimal("49.90")
    assert quote.gold_price_id is None


def test_gold_product_uses_latest_snapshot(db, make_product, make_gold_price):
    pid = make_product(base_price="100.00", karat="18K", weight_grams=Decimal("4.00"))
    make_gold_price("50.00", timestamp=T0)
    latest = make_gold_price("60.00", timestamp=T0 + timedelta(hours=1))

    quote = PricingService(db).resolve(pid)
    # 100 + 4g * 60 * 18/24 = 280
    assert quote.unit_price == Decimal("280.00")
    assert quote.gold_price_id == latest


def test_gold_product_with_explicit_snapshot(db, make_product, make_gold_price):
    pid = make_product(base_price="10.00", karat="22K", weight_grams=Decimal("1.50"))
    older = make_gold_price("48.00", timestamp=T0)
    make_gold_price("70.00", timestamp=T0 + timedelta(days=1))

    quote = PricingService(db).resolve(pid, gold_price_id=older)
    # 10 + 1.5 * 48 * 22/24 = 76
    assert quote.unit_price == Decimal("76.00")
    assert quote.gold_price_id == older


def test_price_is_rounded_to_cents(db, make_product, make_gold_price):
    pid = make_product(base_price="0.00", karat="14K", weight_grams=Decimal("1.00"))
    make_gold_price("10.00", timestamp=T0)
    # 10 * 14/24 = 5.8333...
    assert PricingService(db).resolve(pid).unit_price == Decimal("5.83")


def test_missing_snapshot_is_price_unavailable(db, make_product, make_gold_price):
    pid = make_product(karat="24K", weight_grams=Decimal("2.00"))
    with pytest.raises(PriceUnavailable):
        PricingService(db).resolve(pid)

    make_gold_price("60.00", timestamp=T0)
    with pytest.raises(PriceUnavailable):
        PricingService(db).resolve(pid, gold_price_id=9999)


def test_unknown_product(db):
    with pytest.raises(ProductNotFound):
        PricingService(db).resolve(12345)


def test_karat_purity():
    assert karat_purity("24K") == 1
    assert karat_purity("18K") == Decimal("0.75")


def test_record_gold_price_rejects_non_positive(db):
    with pytest.raises(InvalidGoldPrice):
        PricingService(db).record_gold_price("0")


def test_quote_and_gold_price_endpoints(make_product):
    pid = make_product(base_price="20.00", karat="18K", weight_grams=Decimal("2.00"))

    r = client.get(f"/api/products/{pid}/price")
    assert r.status_code == 503
    assert r.json()["detail"]["code"] == "price_unavailable"

    r = client.get("/api/gold-prices/latest")
    assert r.status_code == 404

    r = client.post("/api/gold-prices", json={"price_per_gram_24k": "40.00", "source_api": "test"})
    assert r.status_code == 201
    gold_id = r.json()["id"]

    r = client.get(f"/api/products/{pid}/price")
    assert r.status_code == 200
    body = r.json()
    # 20 + 2 * 40 * 0.75 = 80
    assert Decimal(body["unit_price"]) == Decimal("80.00")
    assert body["gold_price_id"] == gold_id

    r = client.get("/api/gold-prices/latest")
    assert r.json()["id"] == gold_id

    assert client.get("/api/products/999/price").status_code == 404


def test_gold_price_history_and_single_snapshot(db, make_gold_price):
    oldest = make_gold_price("50.00", timestamp=T0)
    newest = make_gold_price("65.00", timestamp=T0 + timedelta(days=2))
    middle = make_gold_price("58.00", timestamp=T0 + timedelta(days=1))

    svc = PricingService(db)
    assert [gp.id for gp in svc.gold_price_history()] == [newest, middle, oldest]
    assert [gp.id for gp in svc.gold_price_history(limit=2)] == [newest, middle]
    assert svc.get_gold_price(middle).price_per_gram_24k == Decimal("58.00")
    with pytest.raises(GoldPriceNotFound):
        svc.get_gold_price(9999)

    r = client.get("/api/gold-prices")
    assert r.status_code == 200
    assert [g["id"] for g in r.json()] == [newest, middle, oldest]
    assert [g["id"] for g in client.get("/api/gold-prices", params={"limit": 1}).json()] == [newest]

    r = client.get(f"/api/gold-prices/{oldest}")
    assert r.status_code == 200
    assert Decimal(r.json()["price_per_gram_24k"]) == Decimal("50.00")

    r = client.get("/api/gold-prices/9999")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "gold_price_not_found"
    # the fixed path still wins over the id route
    assert client.get("/api/gold-prices/latest").json()["id"] == newest
