# backend/storefront/schemas/order_schema.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    quantity: int
    price_at_purchase: Decimal


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    order_id: int
    amount: Decimal
    payment_method: str
    transaction_id: str
    status: str
    payment_date: Optional[datetime] = None


class OrderSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    status: str
    order_date: datetime
    total_amount: Decimal


class OrderOut(OrderSummaryOut):
    user_id: int
    shipping_amount: Decimal
    tax_amount: Decimal
    shipping_address_id: int
    billing_address_id: int
    shipping_address_snapshot: dict
    billing_address_snapshot: dict
    shipping_method: Optional[str] = None
    tracking_number: Optional[str] = None
    customer_notes: Optional[str] = None
    items: List[OrderItemOut]
    payments: List[PaymentOut]
