from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import current_user_id, http_error
from storefront.db import get_db
from storefront.schemas.cart_schema import CartItemOut, CartOut
from storefront.services.cart_service import CartService
from storefront.services.errors import StorefrontException

router = APIRouter(prefix="/api/cart", tags=["cart"])


class AddItemIn(BaseModel):
    product_id: int
    quantity: int
    gold_price_id: Optional[int] = None


class UpdateItemIn(BaseModel):
    quantity: int


@router.get("", summary="Get cart")
def get_cart(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    svc = CartService(db)
    return CartOut.model_validate(svc.get_cart(user_id)).model_dump(mode="json")


@router.post("/items", summary="Add item to cart")
def add_item(
    payload: AddItemIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    try:
        item = svc.add_item(user_id, payload.product_id, payload.quantity, payload.gold_price_id)
    except StorefrontException as e:
        raise http_error(e)
    return CartItemOut.model_validate(item).model_dump(mode="json")


@router.put("/items/{product_id}", summary="Change the quantity of a cart line")
def update_item(
    product_id: int,
    payload: UpdateItemIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    try:
        item = svc.update_item(user_id, product_id, payload.quantity)
    except StorefrontException as e:
        raise http_error(e)
    return CartItemOut.model_validate(item).model_dump(mode="json")


@router.delete("/items/{product_id}", summary="Remove item")
def remove_item(
    product_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    removed = svc.remove_item(user_id, product_id)
    return {"ok": True, "removed": removed}


@router.delete("", summary="Empty the cart")
def clear_cart(user_id: int = Depends(current_user_id), db: Session = Depends(get_db)):
    svc = CartService(db)
    return {"ok": True, "removed": svc.clear(user_id)}
