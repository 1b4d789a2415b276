import logging
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Mapping

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.services.errors import InsufficientStock, ProductNotFound, StockLockTimeout
from storefront.utils.locks import LockTimeout, hold_locks, order_lock_name, product_lock_name

log = logging.getLogger("inventory")


class InventoryService:
    """
    Stock ledger: Product.stock_quantity is the authoritative count of
    sellable units. None of these methods commit; they run inside the
    caller's unit of work.
    """

    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)

    @contextmanager
    def locked(self, product_ids: Iterable[int] = (), order_ids: Iterable[int] = ()) -> Iterator[None]:
        names = [product_lock_name(p) for p in product_ids]
        names += [order_lock_name(o) for o in order_ids]
        try:
            with hold_locks(names):
                yield
        except LockTimeout as e:
            raise StockLockTimeout(str(e), lock=e.name)

    def available_quantity(self, product_id: int) -> int:
        product = self.product_repo.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        if not product.is_active:
            return 0
        return product.stock_quantity

    def check(self, requested: Mapping[int, int]) -> Dict[int, Product]:
        """
        Lock the requested products and verify each is active with enough
        stock. Raises InsufficientStock naming every offending product id.
        """
        products = self.product_repo.lock_many(requested.keys())
        offending: List[int] = []
        for product_id, qty in sorted(requested.items()):
            p = products.get(product_id)
            if p is None or not p.is_active or p.stock_quantity < qty:
                offending.append(product_id)
        if offending:
            log.warning("insufficient stock products=%s requested=%s", offending, dict(requested))
            raise InsufficientStock(offending)
        return products

    def decrement(self, product_id: int, qty: int) -> None:
        """Compare-and-decrement: never lets stock_quantity go below zero."""
        res = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= qty)
            .values(stock_quantity=Product.stock_quantity - qty)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise InsufficientStock([product_id])
        log.info("stock decremented product=%s qty=%s", product_id, qty)

    def restore(self, product_id: int, qty: int) -> None:
        res = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock_quantity=Product.stock_quantity + qty)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise ProductNotFound(product_id)
        log.info("stock restored product=%s qty=%s", product_id, qty)
