# backend/storefront/schemas/address_schema.py
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AddressIn(BaseModel):
    full_name: Optional[str] = None
    address_line1: str = Field(..., min_length=1)
    address_line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state_province: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)
    phone: Optional[str] = None
    address_type: Literal["shipping", "billing"] = "shipping"
    is_default: bool = False


class AddressOut(AddressIn):
    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: int
