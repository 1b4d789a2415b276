# backend/storefront/schemas/pricing_schema.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PriceQuoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    product_id: int
    unit_price: Decimal
    gold_price_id: Optional[int] = None


class GoldPriceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    price_per_gram_24k: Decimal
    timestamp: datetime
    source_api: Optional[str] = None
