# backend/storefront/schemas/cart_schema.py
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    quantity: int
    price_at_addition: Decimal
    gold_price_snapshot_id: Optional[int] = None
    line_total: Decimal


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    user_id: int
    items: List[CartItemOut]
    subtotal: Decimal
