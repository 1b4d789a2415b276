from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.api.deps import http_error
from storefront.db import get_db
from storefront.schemas.order_schema import OrderOut
from storefront.services.errors import StorefrontException
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/api/admin", tags=["admin"])


class StatusChangeIn(BaseModel):
    status: Literal["processing", "shipped", "delivered", "cancelled", "refunded"]
    tracking_number: Optional[str] = None


@router.get("/orders", summary="All orders across users, paginated")
def list_all_orders(
    status: Optional[
        Literal["pending_payment", "processing", "shipped", "delivered", "cancelled", "refunded"]
    ] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["order_date", "total_amount", "status", "id"] = Query("order_date"),
    sort_direction: Literal["asc", "desc"] = Query("desc"),
    db: Session = Depends(get_db),
):
    svc = OrderService(db)
    result = svc.list_all_orders(
        status=status,
        page=page,
        limit=limit,
        sort_by=sort_by,
        descending=sort_direction == "desc",
    )
    result["items"] = [OrderOut.model_validate(o).model_dump(mode="json") for o in result["items"]]
    return result


@router.post("/orders/{order_id}/status", summary="Move an order through its lifecycle")
def change_order_status(order_id: int, payload: StatusChangeIn, db: Session = Depends(get_db)):
    svc = OrderService(db)
    try:
        return svc.transition_order_status(
            order_id, payload.status, tracking_number=payload.tracking_number
        )
    except StorefrontException as e:
        raise http_error(e)
