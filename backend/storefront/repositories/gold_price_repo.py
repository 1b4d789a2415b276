from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.gold_price import GoldPrice


class GoldPriceRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, gold_price_id: int) -> Optional[GoldPrice]:
        return self.db.get(GoldPrice, gold_price_id)

    def latest(self) -> Optional[GoldPrice]:
        return (
            self.db.query(GoldPrice)
            .order_by(GoldPrice.timestamp.desc(), GoldPrice.id.desc())
            .first()
        )

    def history(self, limit: int = 100) -> List[GoldPrice]:
        return (
            self.db.query(GoldPrice)
            .order_by(GoldPrice.timestamp.desc(), GoldPrice.id.desc())
            .limit(limit)
            .all()
        )

    def add(self, price_per_gram_24k, timestamp=None, source_api=None) -> GoldPrice:
        gp = GoldPrice(price_per_gram_24k=price_per_gram_24k, source_api=source_api)
        if timestamp is not None:
            gp.timestamp = timestamp
        self.db.add(gp)
        self.db.flush()
        return gp
