from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from storefront.db import Base
from storefront.models.gold_price import GoldPrice  # noqa: F401
from storefront.models.product import Product  # noqa: F401


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_cart_items_user_product"),
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    quantity = Column(Integer, nullable=False, default=1)
    price_at_addition = Column(Numeric(10, 2), nullable=False)  # unit price locked at add time
    gold_price_snapshot_id = Column(
        Integer, ForeignKey("gold_prices.id", ondelete="SET NULL"), nullable=True
    )
    added_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    product = relationship("Product")
    gold_price = relationship("GoldPrice")

    @property
    def line_total(self):
        return self.price_at_addition * self.quantity
