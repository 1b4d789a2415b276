import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from storefront.adapters.mock_payment import MockPaymentAdapter
from storefront.config import settings
from storefront.models.order import TERMINAL_STATUSES, Order
from storefront.models.payment import Payment
from storefront.repositories.order_repo import OrderRepository
from storefront.services.errors import (
    InvalidStateTransition,
    OrderNotFound,
    PaymentConflict,
    PaymentNotFound,
    TrackingNumberRequired,
)
from storefront.services.inventory_service import InventoryService
from storefront.utils.transactions import atomic

log = logging.getLogger("orders")

# forward moves of the fulfilment path; cancel and refund are handled separately
FORWARD_TRANSITIONS = {
    "pending_payment": "processing",
    "processing": "shipped",
    "shipped": "delivered",
}
CANCELLABLE = frozenset({"pending_payment", "processing"})
PAYMENT_OUTCOMES = ("succeeded", "failed")


class OrderService:
    """
    Order lifecycle state machine:

        pending_payment -> processing -> shipped -> delivered
        pending_payment | processing -> cancelled   (stock restored)
        any non-terminal -> refunded                 (needs a succeeded payment)

    Every operation holds the order's lock and runs in one transaction, so a
    rejected request never leaves a partial change behind.
    """

    def __init__(self, db: Session, payment_adapter: Optional[MockPaymentAdapter] = None):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.inventory = InventoryService(db)
        self.payment_adapter = payment_adapter or MockPaymentAdapter()

    # --- reads ------------------------------------------------------------

    def get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        order = self.order_repo.get(order_id)
        # another user's order is reported exactly like a missing one
        if not order or (user_id is not None and order.user_id != user_id):
            raise OrderNotFound(order_id)
        return order

    def list_orders(self, user_id: int, status: Optional[str] = None) -> List[Order]:
        return self.order_repo.list_for_user(user_id, status=status)

    def list_all_orders(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "order_date",
        descending: bool = True,
    ) -> Dict:
        """Back-office view: every user's orders, newest first by default."""
        orders, total = self.order_repo.list_all(
            status=status, page=page, limit=limit, sort_by=sort_by, descending=descending
        )
        return {
            "items": orders,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    # --- payment events ---------------------------------------------------

    def record_payment_outcome(self, order_id: int, payment_id: int, outcome: str) -> Dict:
        if outcome not in PAYMENT_OUTCOMES:
            raise InvalidStateTransition("pending", outcome, entity="payment")

        with self.inventory.locked(order_ids=[order_id]):
            with atomic(self.db):
                order = self._locked_order(order_id)
                payment = self.order_repo.get_payment(order_id, payment_id)
                if not payment:
                    raise PaymentNotFound(payment_id, order_id)
                if payment.status != "pending":
                    raise InvalidStateTransition(payment.status, outcome, entity="payment")

                if outcome == "succeeded":
                    if order.status != "pending_payment":
                        raise InvalidStateTransition(order.status, "processing")
                    order.status = "processing"
                # a failed payment leaves the order waiting for a new attempt
                payment.status = outcome
                status = order.status

        log.info("payment outcome order=%s payment=%s outcome=%s order_status=%s", order_id, payment_id, outcome, status)
        return {"order_id": order_id, "payment_id": payment_id, "order_status": status}

    def create_payment_attempt(
        self,
        order_id: int,
        payment_method: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> Payment:
        """New pending Payment for an order whose earlier attempt failed."""
        with self.inventory.locked(order_ids=[order_id]):
            with atomic(self.db):
                order = self._locked_order(order_id)
                if order.status != "pending_payment":
                    raise InvalidStateTransition(order.status, "pending_payment")
                if self.order_repo.payments(order_id, status="pending"):
                    raise PaymentConflict(
                        f"Order {order_id} already has a pending payment", order_id=order_id
                    )
                transaction_id = transaction_id or self.payment_adapter.new_transaction_id()
                if self.order_repo.transaction_id_exists(transaction_id):
                    raise PaymentConflict(
                        f"Transaction id {transaction_id!r} already recorded",
                        transaction_id=transaction_id,
                    )
                payment = Payment(
                    order_id=order.id,
                    amount=order.total_amount,
                    payment_method=payment_method or settings.DEFAULT_PAYMENT_METHOD,
                    transaction_id=transaction_id,
                    status="pending",
                )
                self.db.add(payment)
                self.db.flush()
                payment_id = payment.id
        log.info("payment attempt order=%s payment=%s", order_id, payment_id)
        return self.db.get(Payment, payment_id)

    # --- fulfilment / admin ----------------------------------------------

    def transition_order_status(
        self, order_id: int, target: str, tracking_number: Optional[str] = None
    ) -> Dict:
        if target == "cancelled":
            return self.cancel_order(order_id)
        if target == "refunded":
            return self.refund_order(order_id)

        with self.inventory.locked(order_ids=[order_id]):
            with atomic(self.db):
                order = self._locked_order(order_id)
                current = order.status
                if FORWARD_TRANSITIONS.get(current) != target:
                    raise InvalidStateTransition(current, target)

                if target == "processing" and not self.order_repo.payments(order_id, status="succeeded"):
                    # payment success is what moves an order into processing
                    raise InvalidStateTransition(current, target)
                if target == "shipped":
                    if tracking_number:
                        order.tracking_number = tracking_number
                    if not order.tracking_number:
                        raise TrackingNumberRequired(order_id)

                order.status = target
                tracking = order.tracking_number

        log.info("order %s moved %s -> %s", order_id, current, target)
        return {"order_id": order_id, "order_status": target, "tracking_number": tracking}

    def cancel_order(self, order_id: int) -> Dict:
        """
        Cancel and give the order's units back to the stock ledger.

        Pending payments are closed as failed so a late gateway callback is
        rejected; captured payments are refunded in the same transaction.
        """
        with atomic(self.db):
            items = self.order_repo.items(order_id)
            product_ids = [it.product_id for it in items]

        with self.inventory.locked(product_ids=product_ids, order_ids=[order_id]):
            with atomic(self.db):
                order = self._locked_order(order_id)
                if order.status not in CANCELLABLE:
                    raise InvalidStateTransition(order.status, "cancelled")

                restored: Dict[int, int] = {}
                for it in self.order_repo.items(order_id):
                    restored[it.product_id] = restored.get(it.product_id, 0) + it.quantity
                for product_id, qty in sorted(restored.items()):
                    self.inventory.restore(product_id, qty)

                for payment in self.order_repo.payments(order_id, status="pending"):
                    payment.status = "failed"
                refunds = self._refund_captured(order_id)

                previous = order.status
                order.status = "cancelled"

        log.info("order %s cancelled from %s restored=%s refunds=%s", order_id, previous, restored, len(refunds))
        return {
            "order_id": order_id,
            "order_status": "cancelled",
            "restored_stock": [
                {"product_id": pid, "quantity": qty} for pid, qty in sorted(restored.items())
            ],
            "refunds": refunds,
        }

    def refund_order(self, order_id: int) -> Dict:
        with self.inventory.locked(order_ids=[order_id]):
            with atomic(self.db):
                order = self._locked_order(order_id)
                if order.status in TERMINAL_STATUSES:
                    raise InvalidStateTransition(order.status, "refunded")
                refunds = self._refund_captured(order_id)
                if not refunds:
                    raise InvalidStateTransition(order.status, "refunded")

                previous = order.status
                order.status = "refunded"

        log.info("order %s refunded from %s payments=%s", order_id, previous, [r["payment_id"] for r in refunds])
        return {"order_id": order_id, "order_status": "refunded", "refunds": refunds}

    def _refund_captured(self, order_id: int) -> List[Dict]:
        refunds = []
        for payment in self.order_repo.payments(order_id, status="succeeded"):
            record = self.payment_adapter.refund(payment.transaction_id, payment.amount)
            payment.status = "refunded"
            payment.gateway_response = self.payment_adapter.gateway_response(record)
            refunds.append({"payment_id": payment.id, "refund_id": record["refund_id"]})
        return refunds

    def _locked_order(self, order_id: int) -> Order:
        order = self.order_repo.lock(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order
