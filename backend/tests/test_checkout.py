from decimal import Decimal

import pytest

from conftest import count_rows, stock_of
from storefront.models.address import Address
from storefront.models.cart_item import CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.payment import Payment
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutOptions, CheckoutService
from storefront.services.errors import (
    AddressNotFound,
    AddressOwnershipMismatch,
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    PaymentConflict,
    ProductInUse,
)
from storefront.utils.transactions import atomic

USER = 1


@pytest.fixture
def addresses(make_address):
    return make_address(USER, "shipping"), make_address(USER, "billing")


def _assert_nothing_written(stock_before):
    assert count_rows(Order) == 0
    assert count_rows(OrderItem) == 0
    assert count_rows(Payment) == 0
    for pid, qty in stock_before.items():
        assert stock_of(pid) == qty


def test_checkout_creates_order_at_locked_prices(db, make_product, addresses):
    ring = make_product(base_price="250.00", stock=5)
    chain = make_product(base_price="99.99", stock=3)
    cart = CartService(db)
    cart.add_item(USER, ring, 2)
    cart.add_item(USER, chain, 1)

    # a later catalogue change does not affect the checkout price
    db.get(Product, ring).base_price = Decimal("300.00")
    db.commit()

    result = CheckoutService(db).checkout(
        USER,
        *addresses,
        CheckoutOptions(shipping_amount=Decimal("15.00"), tax_amount=Decimal("4.01"), customer_notes="gift wrap"),
    )
    assert result.status == "pending_payment"
    assert result.total_amount == Decimal("619.00")

    order = db.get(Order, result.order_id)
    items = {it.product_id: it for it in order.items}
    assert items[ring].price_at_purchase == Decimal("250.00")
    assert items[ring].quantity == 2
    assert items[chain].price_at_purchase == Decimal("99.99")
    line_sum = sum(it.price_at_purchase * it.quantity for it in order.items)
    assert line_sum == order.total_amount - (order.shipping_amount + order.tax_amount)
    assert order.shipping_method == "standard"
    assert order.customer_notes == "gift wrap"

    assert stock_of(ring) == 3
    assert stock_of(chain) == 2
    assert db.query(CartItem).filter(CartItem.user_id == USER).count() == 0

    [payment] = order.payments
    assert payment.id == result.payment_id
    assert payment.status == "pending"
    assert payment.amount == order.total_amount
    assert payment.transaction_id.startswith("mock-")


def test_empty_cart_fails_without_writes(db, make_product, addresses):
    pid = make_product(stock=4)
    with pytest.raises(EmptyCart):
        CheckoutService(db).checkout(USER, *addresses)
    _assert_nothing_written({pid: 4})


def test_insufficient_stock_names_every_offender_and_writes_nothing(db, make_product, addresses):
    ok = make_product(stock=10)
    short = make_product(stock=1)
    hidden = make_product(stock=10)
    cart = CartService(db)
    cart.add_item(USER, ok, 2)
    cart.add_item(USER, short, 2)
    cart.add_item(USER, hidden, 1)
    db.get(Product, hidden).is_active = False
    db.commit()

    with pytest.raises(InsufficientStock) as exc:
        CheckoutService(db).checkout(USER, *addresses)
    assert exc.value.product_ids == [short, hidden]
    assert exc.value.detail()["product_ids"] == [short, hidden]

    _assert_nothing_written({ok: 10, short: 1, hidden: 10})
    assert count_rows(CartItem) == 3


def test_unknown_address(db, make_product, make_address):
    pid = make_product(stock=3)
    shipping = make_address(USER)
    CartService(db).add_item(USER, pid, 1)
    with pytest.raises(AddressNotFound):
        CheckoutService(db).checkout(USER, shipping, 999)
    _assert_nothing_written({pid: 3})
    assert count_rows(CartItem) == 1


def test_someone_elses_address(db, make_product, make_address):
    pid = make_product(stock=3)
    mine = make_address(USER)
    theirs = make_address(USER + 1)
    CartService(db).add_item(USER, pid, 1)
    with pytest.raises(AddressOwnershipMismatch):
        CheckoutService(db).checkout(USER, theirs, mine)
    _assert_nothing_written({pid: 3})


def test_address_edits_do_not_rewrite_placed_orders(db, make_product, addresses):
    pid = make_product(stock=3)
    CartService(db).add_item(USER, pid, 1)
    result = CheckoutService(db).checkout(USER, *addresses)

    db.get(Address, addresses[0]).city = "Shelbyville"
    db.commit()

    order = db.get(Order, result.order_id)
    assert order.shipping_address_snapshot["city"] == "Springfield"
    assert order.shipping_address_snapshot["address_id"] == addresses[0]
    assert order.shipping_address_id == addresses[0]


def test_duplicate_transaction_id_rolls_back(db, make_product, addresses):
    pid = make_product(stock=5)
    cart = CartService(db)
    cart.add_item(USER, pid, 1)
    CheckoutService(db).checkout(USER, *addresses, CheckoutOptions(transaction_id="txn-1"))

    cart.add_item(USER, pid, 1)
    with pytest.raises(PaymentConflict):
        CheckoutService(db).checkout(USER, *addresses, CheckoutOptions(transaction_id="txn-1"))

    assert count_rows(Order) == 1
    assert stock_of(pid) == 4
    assert count_rows(CartItem) == 1


def test_negative_pass_through_amount_rejected(db, make_product, addresses):
    pid = make_product(stock=5)
    CartService(db).add_item(USER, pid, 1)
    with pytest.raises(InvalidQuantity):
        CheckoutService(db).checkout(USER, *addresses, CheckoutOptions(tax_amount=Decimal("-1")))
    _assert_nothing_written({pid: 5})


def test_ordered_product_cannot_be_deleted(db, make_product, addresses):
    sold = make_product(stock=5)
    unsold = make_product(stock=5)
    CartService(db).add_item(USER, sold, 1)
    CheckoutService(db).checkout(USER, *addresses)

    repo = ProductRepository(db)
    with pytest.raises(ProductInUse):
        with atomic(db):
            repo.delete(sold)
    with atomic(db):
        repo.delete(unsold)
    assert db.get(Product, unsold) is None
    assert db.get(Product, sold) is not None


def test_product_delete_leaves_rollback_to_the_caller(db, make_product, addresses):
    sold = make_product(stock=5)
    CartService(db).add_item(USER, sold, 1)
    CheckoutService(db).checkout(USER, *addresses)

    with pytest.raises(ProductInUse):
        ProductRepository(db).delete(sold)
    # the failed transaction is still the caller's to end
    assert db.in_transaction()
    db.rollback()
    assert not db.in_transaction()
    assert db.get(Product, sold) is not None
