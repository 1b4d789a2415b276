import os
import tempfile
from decimal import Decimal

import pytest

# point the app at a throwaway database before any storefront module is imported
_tmpdir = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmpdir, "test.db")
os.environ["LOCK_DIR"] = os.path.join(_tmpdir, "locks")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from storefront.db import SessionLocal, init_db  # noqa: E402
from storefront.models.address import Address  # noqa: E402
from storefront.models.gold_price import GoldPrice  # noqa: E402
from storefront.models.product import Product  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(base_price="100.00", stock=10, **fields):
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("name", f"Product {n}")
        fields.setdefault("slug", f"product-{n}-{fields.get('id', 'x')}")
        p = Product(base_price=Decimal(base_price), stock_quantity=stock, **fields)
        db.add(p)
        db.commit()
        return p.id

    return _make


@pytest.fixture
def make_address(db):
    def _make(user_id, address_type="shipping", city="Springfield"):
        a = Address(
            user_id=user_id,
            full_name=f"User {user_id}",
            address_line1="1 Market Street",
            city=city,
            state_province="IL",
            postal_code="62701",
            country="US",
            address_type=address_type,
        )
        db.add(a)
        db.commit()
        return a.id

    return _make


@pytest.fixture
def make_gold_price(db):
    def _make(price_per_gram_24k="60.00", **fields):
        gp = GoldPrice(price_per_gram_24k=Decimal(price_per_gram_24k), **fields)
        db.add(gp)
        db.commit()
        return gp.id

    return _make


def stock_of(product_id):
    s = SessionLocal()
    try:
        return s.get(Product, product_id).stock_quantity
    finally:
        s.close()


def count_rows(model):
    s = SessionLocal()
    try:
        return s.query(model).count()
    finally:
        s.close()
