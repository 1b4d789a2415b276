from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.api.deps import current_user_id, http_error
from storefront.db import get_db
from storefront.schemas.order_schema import OrderOut, OrderSummaryOut, PaymentOut
from storefront.services.checkout_service import CheckoutOptions, CheckoutService
from storefront.services.errors import StorefrontException
from storefront.services.order_service import OrderService

router = APIRouter(tags=["orders"])


class CheckoutIn(BaseModel):
    shipping_address_id: int
    billing_address_id: int
    shipping_method: Optional[str] = None
    customer_notes: Optional[str] = None
    shipping_amount: Decimal = Field(Decimal("0"), ge=0)
    tax_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


class PaymentAttemptIn(BaseModel):
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


@router.post("/api/checkout", status_code=201, summary="Create order from the cart (checkout)")
def checkout(
    payload: CheckoutIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = CheckoutService(db)
    options = CheckoutOptions(
        shipping_method=payload.shipping_method,
        customer_notes=payload.customer_notes,
        shipping_amount=payload.shipping_amount,
        tax_amount=payload.tax_amount,
        payment_method=payload.payment_method,
        transaction_id=payload.transaction_id,
    )
    try:
        result = svc.checkout(
            user_id, payload.shipping_address_id, payload.billing_address_id, options
        )
    except StorefrontException as e:
        raise http_error(e)
    return {
        "order_id": result.order_id,
        "status": result.status,
        "total_amount": str(result.total_amount),
        "payment_id": result.payment_id,
    }


@router.get("/api/orders", summary="Order history of the caller")
def list_orders(
    status: Optional[
        Literal["pending_payment", "processing", "shipped", "delivered", "cancelled", "refunded"]
    ] = Query(None),
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    orders = svc.list_orders(user_id, status=status)
    return [OrderSummaryOut.model_validate(o).model_dump(mode="json") for o in orders]


@router.get("/api/orders/{order_id}", summary="Order detail")
def get_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    try:
        order = svc.get_order(order_id, user_id=user_id)
    except StorefrontException as e:
        raise http_error(e)
    return OrderOut.model_validate(order).model_dump(mode="json")


@router.post("/api/orders/{order_id}/cancel", summary="Cancel an order and restock its items")
def cancel_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    try:
        svc.get_order(order_id, user_id=user_id)
        return svc.cancel_order(order_id)
    except StorefrontException as e:
        raise http_error(e)


@router.post("/api/orders/{order_id}/payments", status_code=201, summary="Start a new payment attempt")
def create_payment_attempt(
    order_id: int,
    payload: PaymentAttemptIn,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    try:
        svc.get_order(order_id, user_id=user_id)
        payment = svc.create_payment_attempt(
            order_id, payment_method=payload.payment_method, transaction_id=payload.transaction_id
        )
    except StorefrontException as e:
        raise http_error(e)
    return PaymentOut.model_validate(payment).model_dump(mode="json")
