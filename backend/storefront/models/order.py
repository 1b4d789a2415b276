from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from storefront.db import Base
from storefront.models.payment import Payment  # noqa: F401
from storefront.models.product import Product  # noqa: F401

ORDER_STATUSES = (
    "pending_payment",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
)
TERMINAL_STATUSES = frozenset({"delivered", "cancelled", "refunded"})


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    order_date = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
    status = Column(
        Enum(*ORDER_STATUSES, name="order_status"),
        nullable=False,
        default="pending_payment",
    )
    total_amount = Column(Numeric(10, 2), nullable=False)
    shipping_amount = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_address_id = Column(
        Integer, ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=False
    )
    billing_address_id = Column(
        Integer, ForeignKey("addresses.id", ondelete="RESTRICT"), nullable=False
    )
    # postal fields as they were when the order was placed
    shipping_address_snapshot = Column(JSON, nullable=False)
    billing_address_snapshot = Column(JSON, nullable=False)
    shipping_method = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    customer_notes = Column(Text, nullable=True)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItem.id",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.id",
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)  # frozen, never re-priced

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
