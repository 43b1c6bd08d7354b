from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from kamdon.app.api.deps import get_seller_info
from kamdon.app.core.config import settings
from kamdon.app.schemas.bill import Bill, BillRequest, SellerInfo
from kamdon.app.services.billing import format_bill_for_display, generate_bill
from kamdon.app.services.orders import calculate_order

router = APIRouter()


def _build(payload: BillRequest, seller: SellerInfo) -> Bill:
    issued_at = payload.issued_at or payload.metadata.issued_at or datetime.now(timezone.utc)
    try:
        calculation = calculate_order(payload.cart, settings.MAX_EMPLOYEE_DISCOUNT_PERCENT)
        return generate_bill(calculation, payload.metadata, seller, issued_at)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("", response_model=Bill, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: BillRequest,
    seller: SellerInfo = Depends(get_seller_info),
) -> Bill:
    return _build(payload, seller)


@router.post("/preview")
def preview_bill(
    payload: BillRequest,
    locale: str = Query(default=settings.DEFAULT_LOCALE),
    seller: SellerInfo = Depends(get_seller_info),
) -> dict[str, Any]:
    bill = _build(payload, seller)
    return format_bill_for_display(bill, locale, settings.STORE_TIMEZONE)
