from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.api.deps import http_error
from storefront.db import get_db
from storefront.schemas.pricing_schema import GoldPriceOut, PriceQuoteOut
from storefront.services.errors import StorefrontException
from storefront.services.pricing_service import PricingService

router = APIRouter(tags=["catalogue"])


class GoldPriceIn(BaseModel):
    price_per_gram_24k: Decimal = Field(..., gt=0)
    timestamp: Optional[datetime] = None
    source_api: Optional[str] = None


@router.get("/api/products/{product_id}/price", summary="Quote the unit price a cart would lock in")
def quote_price(
    product_id: int,
    gold_price_id: Optional[int] = Query(None, description="gold price snapshot; latest if omitted"),
    db: Session = Depends(get_db),
):
    svc = PricingService(db)
    try:
        quote = svc.resolve(product_id, gold_price_id)
    except StorefrontException as e:
        raise http_error(e)
    return PriceQuoteOut.model_validate(asdict(quote)).model_dump(mode="json")


@router.post("/api/gold-prices", status_code=201, summary="Record a gold price snapshot")
def record_gold_price(payload: GoldPriceIn, db: Session = Depends(get_db)):
    svc = PricingService(db)
    try:
        gp = svc.record_gold_price(
            payload.price_per_gram_24k, timestamp=payload.timestamp, source_api=payload.source_api
        )
    except StorefrontException as e:
        raise http_error(e)
    return GoldPriceOut.model_validate(gp).model_dump(mode="json")


@router.get("/api/gold-prices/latest", summary="Latest gold price snapshot")
def latest_gold_price(db: Session = Depends(get_db)):
    svc = PricingService(db)
    try:
        gp = svc.latest_gold_price()
    except StorefrontException as e:
        raise HTTPException(status_code=404, detail=e.detail())
    return GoldPriceOut.model_validate(gp).model_dump(mode="json")


@router.get("/api/gold-prices", summary="Gold price history, newest first")
def gold_price_history(limit: int = Query(100, ge=1, le=1000), db: Session = Depends(get_db)):
    svc = PricingService(db)
    return [GoldPriceOut.model_validate(gp).model_dump(mode="json") for gp in svc.gold_price_history(limit)]


@router.get("/api/gold-prices/{gold_price_id}", summary="A single gold price snapshot")
def get_gold_price(gold_price_id: int, db: Session = Depends(get_db)):
    svc = PricingService(db)
    try:
        gp = svc.get_gold_price(gold_price_id)
    except StorefrontException as e:
        raise http_error(e)
    return GoldPriceOut.model_validate(gp).model_dump(mode="json")
