from typing import Dict, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.services.errors import ProductInUse, ProductNotFound


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_active(self, product_id: int) -> Optional[Product]:
        return (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.is_active.is_(True))
            .first()
        )

    def lock_many(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """
        Load the given products with a row lock, in ascending id order.
        On dialects without FOR UPDATE (SQLite) the clause is dropped by
        SQLAlchemy and the caller's file locks do the serializing.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = (
            self.db.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {p.id: p for p in rows}

    def create(self, **fields) -> Product:
        p = Product(**fields)
        self.db.add(p)
        self.db.flush()
        return p

    def delete(self, product_id: int) -> None:
        """
        Delete a product; refused while any order item references it.
        On ProductInUse the session needs a rollback, which belongs to the
        caller's unit of work.
        """
        p = self.get(product_id)
        if not p:
            raise ProductNotFound(product_id)
        self.db.delete(p)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise ProductInUse(product_id) from e
