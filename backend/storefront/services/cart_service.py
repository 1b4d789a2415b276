import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Iterator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.models.cart_item import CartItem
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.errors import (
    CartItemNotFound,
    InvalidQuantity,
    ProductNotFound,
    StockLockTimeout,
)
from storefront.services.pricing_service import PricingService, to_money
from storefront.utils.locks import LockTimeout, cart_lock_name, hold_locks
from storefront.utils.transactions import atomic

log = logging.getLogger("cart")


class CartService:
    def __init__(self, db: Session):
        self.db = db
        self.cart_repo = CartRepository(db)
        self.product_repo = ProductRepository(db)
        self.pricing = PricingService(db)

    def get_cart(self, user_id: int) -> Dict:
        items = self.cart_repo.list_items(user_id)
        subtotal = sum((it.line_total for it in items), Decimal("0"))
        return {"user_id": user_id, "items": items, "subtotal": to_money(subtotal)}

    def add_item(
        self,
        user_id: int,
        product_id: int,
        qty: int,
        gold_price_id: Optional[int] = None,
    ) -> CartItem:
        """
        Add qty units of a product. An existing line only gains quantity; its
        price_at_addition stays what it was when the line was first created.
        """
        if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
            raise InvalidQuantity("Quantity must be a positive integer", quantity=qty)

        with self._cart_locked(user_id):
            with atomic(self.db):
                product = self.product_repo.get_active(product_id)
                if not product:
                    raise ProductNotFound(product_id)

                if not self.cart_repo.increment_quantity(user_id, product_id, qty):
                    quote = self.pricing.quote(product, gold_price_id)
                    try:
                        # savepoint so a lost insert race only undoes the insert
                        with self.db.begin_nested():
                            self.cart_repo.insert_item(
                                user_id, product_id, qty, quote.unit_price, quote.gold_price_id
                            )
                    except IntegrityError:
                        # another writer created the line first
                        log.info("cart insert collision user=%s product=%s", user_id, product_id)
                        if not self.cart_repo.increment_quantity(user_id, product_id, qty):
                            raise
        item = self.cart_repo.get_item(user_id, product_id)
        log.info("cart add user=%s product=%s qty=%s total_qty=%s", user_id, product_id, qty, item.quantity)
        return item

    def update_item(self, user_id: int, product_id: int, qty: int) -> CartItem:
        qty = max(1, int(qty))
        with atomic(self.db):
            item = self.cart_repo.get_item(user_id, product_id)
            if not item:
                raise CartItemNotFound(product_id)
            item.quantity = qty
            self.db.flush()
        self.db.refresh(item)
        return item

    def remove_item(self, user_id: int, product_id: int) -> bool:
        with atomic(self.db):
            removed = self.cart_repo.delete_item(user_id, product_id)
        return removed > 0

    def clear(self, user_id: int) -> int:
        with atomic(self.db):
            removed = self.cart_repo.clear(user_id)
        log.info("cart cleared user=%s lines=%s", user_id, removed)
        return removed

    @contextmanager
    def _cart_locked(self, user_id: int) -> Iterator[None]:
        # one user's concurrent adds run one at a time
        try:
            with hold_locks([cart_lock_name(user_id)]):
                yield
        except LockTimeout as e:
            raise StockLockTimeout(str(e), lock=e.name)
