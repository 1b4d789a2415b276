from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from storefront.db import Base

PAYMENT_STATUSES = ("pending", "succeeded", "failed", "refunded")


class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    transaction_id = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(
        Enum(*PAYMENT_STATUSES, name="payment_status"),
        nullable=False,
        default="pending",
    )
    gateway_response = Column(Text, nullable=True)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    order = relationship("Order", back_populates="payments")
