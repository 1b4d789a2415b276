from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import http_error
from storefront.db import get_db
from storefront.services.errors import StorefrontException
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/api/payments", tags=["payments"])


class PaymentOutcomeIn(BaseModel):
    outcome: Literal["succeeded", "failed"]


@router.post(
    "/{order_id}/{payment_id}/outcome",
    summary="Payment provider callback: record a payment's outcome",
)
def record_payment_outcome(
    order_id: int,
    payment_id: int,
    payload: PaymentOutcomeIn,
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    try:
        return svc.record_payment_outcome(order_id, payment_id, payload.outcome)
    except StorefrontException as e:
        raise http_error(e)
