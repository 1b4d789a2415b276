from typing import Iterable, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from storefront.models.cart_item import CartItem


class CartRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_item(self, user_id: int, product_id: int) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .first()
        )

    def list_items(self, user_id: int) -> List[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.added_at, CartItem.id)
            .all()
        )

    def lock_items(self, user_id: int, product_ids: Iterable[int]) -> List[CartItem]:
        ids = list(product_ids)
        if not ids:
            return []
        return (
            self.db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id.in_(ids))
            .order_by(CartItem.product_id)
            .with_for_update()
            .populate_existing()
            .all()
        )

    def increment_quantity(self, user_id: int, product_id: int, qty: int) -> bool:
        """Atomically add qty to an existing line. Returns False if there is no line."""
        res = self.db.execute(
            update(CartItem)
            .where(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .values(quantity=CartItem.quantity + qty)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount > 0

    def insert_item(
        self,
        user_id: int,
        product_id: int,
        qty: int,
        price_at_addition,
        gold_price_snapshot_id: Optional[int] = None,
    ) -> CartItem:
        item = CartItem(
            user_id=user_id,
            product_id=product_id,
            quantity=qty,
            price_at_addition=price_at_addition,
            gold_price_snapshot_id=gold_price_snapshot_id,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, user_id: int, product_id: int) -> int:
        res = self.db.execute(
            delete(CartItem)
            .where(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def delete_items(self, item_ids: Iterable[int]) -> int:
        ids = list(item_ids)
        if not ids:
            return 0
        res = self.db.execute(
            delete(CartItem)
            .where(CartItem.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return res.rowcount

    def clear(self, user_id: int) -> int:
        res = self.db.execute(
            delete(CartItem)
            .where(CartItem.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount
