import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.gold_price import GoldPrice
from storefront.models.product import Product
from storefront.repositories.gold_price_repo import GoldPriceRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.errors import (
    GoldPriceNotFound,
    InvalidGoldPrice,
    PriceUnavailable,
    ProductNotFound,
)
from storefront.utils.transactions import atomic

log = logging.getLogger("pricing")

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def karat_purity(karat: str) -> Decimal:
    """'18K' -> 18/24"""
    return Decimal(int(karat.rstrip("Kk"))) / Decimal(24)


@dataclass(frozen=True)
class PriceQuote:
    product_id: int
    unit_price: Decimal
    gold_price_id: Optional[int] = None


class PricingService:
    def __init__(self, db: Session):
        self.db = db
        self.product_repo = ProductRepository(db)
        self.gold_repo = GoldPriceRepository(db)

    def resolve(self, product_id: int, gold_price_id: Optional[int] = None) -> PriceQuote:
        """
        Unit price to freeze into a cart line.

        Plain products cost their base_price. Gold-weight products (karat and
        weight_grams set) add the metal value at the given snapshot, or at the
        latest snapshot when none is given:
            base_price + weight_grams * price_per_gram_24k * karat / 24
        Pure read; no rows are written.
        """
        product = self.product_repo.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        return self.quote(product, gold_price_id)

    def quote(self, product: Product, gold_price_id: Optional[int] = None) -> PriceQuote:
        base = Decimal(product.base_price or 0)
        if not product.is_gold_weight_priced:
            return PriceQuote(product.id, to_money(base))

        gold = self._gold_snapshot(gold_price_id)
        metal = (
            Decimal(product.weight_grams)
            * Decimal(gold.price_per_gram_24k)
            * karat_purity(product.karat)
        )
        return PriceQuote(product.id, to_money(base + metal), gold.id)

    def _gold_snapshot(self, gold_price_id: Optional[int]) -> GoldPrice:
        if gold_price_id is not None:
            gold = self.gold_repo.get(gold_price_id)
            if not gold:
                raise PriceUnavailable(
                    f"Gold price snapshot {gold_price_id} not found",
                    gold_price_id=gold_price_id,
                )
            return gold
        gold = self.gold_repo.latest()
        if not gold:
            raise PriceUnavailable("No gold price snapshot recorded yet")
        return gold

    def latest_gold_price(self) -> GoldPrice:
        return self._gold_snapshot(None)

    def gold_price_history(self, limit: int = 100) -> List[GoldPrice]:
        return self.gold_repo.history(limit=limit)

    def get_gold_price(self, gold_price_id: int) -> GoldPrice:
        gold = self.gold_repo.get(gold_price_id)
        if not gold:
            raise GoldPriceNotFound(gold_price_id)
        return gold

    def record_gold_price(
        self,
        price_per_gram_24k,
        timestamp: Optional[datetime] = None,
        source_api: Optional[str] = None,
    ) -> GoldPrice:
        price = to_money(price_per_gram_24k)
        if price <= 0:
            raise InvalidGoldPrice("Gold price must be positive", price=str(price))
        with atomic(self.db):
            gp = self.gold_repo.add(price, timestamp=timestamp, source_api=source_api)
        log.info("gold price recorded id=%s price_per_gram_24k=%s", gp.id, price)
        return gp
