import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.config import settings
from storefront.models.address import Address
from storefront.models.cart_item import CartItem
from storefront.models.order import Order, OrderItem
from storefront.models.payment import Payment
from storefront.repositories.address_repo import AddressRepository
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.services.errors import (
    AddressNotFound,
    AddressOwnershipMismatch,
    EmptyCart,
    InvalidQuantity,
    PaymentConflict,
)
from storefront.services.inventory_service import InventoryService
from storefront.services.pricing_service import to_money
from storefront.utils.transactions import atomic

log = logging.getLogger("checkout")


@dataclass
class CheckoutOptions:
    shipping_method: Optional[str] = None
    customer_notes: Optional[str] = None
    shipping_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


@dataclass
class CheckoutResult:
    order_id: int
    status: str
    total_amount: Decimal
    payment_id: int


class CheckoutService:
    def __init__(self, db: Session, payment_adapter: Optional[MockPaymentAdapter] = None):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.address_repo = AddressRepository(db)
        self.order_repo = OrderRepository(db)
        self.inventory = InventoryService(db)
        self.payment_adapter = payment_adapter or MockPaymentAdapter()

    def checkout(
        self,
        user_id: int,
        shipping_address_id: int,
        billing_address_id: int,
        options: Optional[CheckoutOptions] = None,
    ) -> CheckoutResult:
        """
        Turn the user's cart into a pending_payment order.

        Steps, all inside one transaction while holding the stock locks of
        every product in the cart:
          1. re-read the cart lines (EmptyCart if there are none)
          2. validate both addresses (AddressNotFound / AddressOwnershipMismatch)
          3. lock products and check stock (InsufficientStock)
          4. insert Order + OrderItems at the cart's locked-in prices
          5. decrement stock, delete the checked-out cart lines
          6. insert a pending Payment for the order total
        Any error rolls everything back.
        """
        options = options or CheckoutOptions()
        shipping_amount = self._pass_through_amount("shipping_amount", options.shipping_amount)
        tax_amount = self._pass_through_amount("tax_amount", options.tax_amount)

        # snapshot which products are in the cart so their locks can be taken
        # before the transaction that reads and writes them
        with atomic(self.db):
            product_ids = [it.product_id for it in self.cart_repo.list_items(user_id)]
        if not product_ids:
            log.info("checkout rejected user=%s reason=empty_cart", user_id)
            raise EmptyCart(user_id)

        with self.inventory.locked(product_ids=product_ids):
            with atomic(self.db):
                lines = self.cart_repo.lock_items(user_id, product_ids)
                if not lines:
                    raise EmptyCart(user_id)

                shipping = self._owned_address(user_id, shipping_address_id)
                billing = self._owned_address(user_id, billing_address_id)

                requested = self._requested_quantities(lines)
                self.inventory.check(requested)

                subtotal = sum((it.price_at_addition * it.quantity for it in lines), Decimal("0"))
                total = to_money(subtotal + shipping_amount + tax_amount)

                order = Order(
                    user_id=user_id,
                    order_date=datetime.now(timezone.utc),
                    status="pending_payment",
                    total_amount=total,
                    shipping_amount=shipping_amount,
                    tax_amount=tax_amount,
                    shipping_address_id=shipping.id,
                    billing_address_id=billing.id,
                    shipping_address_snapshot=shipping.snapshot(),
                    billing_address_snapshot=billing.snapshot(),
                    shipping_method=options.shipping_method or settings.DEFAULT_SHIPPING_METHOD,
                    customer_notes=options.customer_notes,
                )
                self.db.add(order)
                for it in lines:
                    order.items.append(
                        OrderItem(
                            product_id=it.product_id,
                            quantity=it.quantity,
                            price_at_purchase=it.price_at_addition,
                        )
                    )
                self.db.flush()

                for product_id, qty in sorted(requested.items()):
                    self.inventory.decrement(product_id, qty)

                self.cart_repo.delete_items(it.id for it in lines)

                payment = self._pending_payment(order, options)
                self.db.flush()

                result = CheckoutResult(
                    order_id=order.id,
                    status=order.status,
                    total_amount=total,
                    payment_id=payment.id,
                )

        log.info(
            "order created id=%s user=%s lines=%s total=%s payment=%s",
            result.order_id,
            user_id,
            len(requested),
            result.total_amount,
            result.payment_id,
        )
        return result

    def _pass_through_amount(self, name: str, value) -> Decimal:
        amount = to_money(value if value is not None else 0)
        if amount < 0:
            raise InvalidQuantity(f"{name} must not be negative", **{name: str(amount)})
        return amount

    def _owned_address(self, user_id: int, address_id: int) -> Address:
        addr = self.address_repo.get(address_id)
        if not addr:
            raise AddressNotFound(address_id)
        if addr.user_id != user_id:
            raise AddressOwnershipMismatch(address_id)
        return addr

    def _requested_quantities(self, lines: List[CartItem]) -> Dict[int, int]:
        requested: Dict[int, int] = {}
        for it in lines:
            requested[it.product_id] = requested.get(it.product_id, 0) + it.quantity
        return requested

    def _pending_payment(self, order: Order, options: CheckoutOptions) -> Payment:
        transaction_id = options.transaction_id or self.payment_adapter.new_transaction_id()
        if self.order_repo.transaction_id_exists(transaction_id):
            raise PaymentConflict(
                f"Transaction id {transaction_id!r} already recorded",
                transaction_id=transaction_id,
            )
        payment = Payment(
            amount=order.total_amount,
            payment_method=options.payment_method or settings.DEFAULT_PAYMENT_METHOD,
            transaction_id=transaction_id,
            status="pending",
        )
        order.payments.append(payment)
        return payment
