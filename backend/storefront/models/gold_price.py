from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from storefront.db import Base


class GoldPrice(Base):
    """Timestamped 24k gold reference price. Rows are never updated."""

    __tablename__ = "gold_prices"
    id = Column(Integer, primary_key=True, autoincrement=True)
    price_per_gram_24k = Column(Numeric(10, 2), nullable=False)
    timestamp = Column(
        DateTime(timezone=True),
        nullable=False,
        unique=True,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )
    source_api = Column(String(100), nullable=True)
