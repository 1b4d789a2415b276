from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from storefront.models.order import Order, OrderItem
from storefront.models.payment import Payment

SORTABLE_COLUMNS = {
    "order_date": Order.order_date,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "id": Order.id,
}


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: int) -> Optional[Order]:
        return (
            self.db.query(Order)
            .options(selectinload(Order.items), selectinload(Order.payments))
            .filter(Order.id == order_id)
            .first()
        )

    def lock(self, order_id: int) -> Optional[Order]:
        return (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_for_user(self, user_id: int, status: Optional[str] = None) -> List[Order]:
        q = self.db.query(Order).filter(Order.user_id == user_id)
        if status:
            q = q.filter(Order.status == status)
        return q.order_by(Order.order_date.desc(), Order.id.desc()).all()

    def list_all(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "order_date",
        descending: bool = True,
    ) -> Tuple[List[Order], int]:
        """One page of orders across all users, plus the total matching count."""
        q = self.db.query(Order)
        if status:
            q = q.filter(Order.status == status)
        total = q.count()
        column = SORTABLE_COLUMNS[sort_by]
        order = (column.desc(), Order.id.desc()) if descending else (column.asc(), Order.id.asc())
        rows = (
            q.options(selectinload(Order.items), selectinload(Order.payments))
            .order_by(*order)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def items(self, order_id: int) -> List[OrderItem]:
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
            .all()
        )

    def payments(self, order_id: int, status: Optional[str] = None) -> List[Payment]:
        q = self.db.query(Payment).filter(Payment.order_id == order_id)
        if status:
            q = q.filter(Payment.status == status)
        return q.order_by(Payment.id).all()

    def get_payment(self, order_id: int, payment_id: int) -> Optional[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.id == payment_id, Payment.order_id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def transaction_id_exists(self, transaction_id: str) -> bool:
        return (
            self.db.query(Payment.id)
            .filter(Payment.transaction_id == transaction_id)
            .first()
            is not None
        )
