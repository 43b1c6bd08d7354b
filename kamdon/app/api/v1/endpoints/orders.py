from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from kamdon.app.core.config import settings
from kamdon.app.schemas.billing import Cart, OrderCalculation
from kamdon.app.services.orders import calculate_order

router = APIRouter()


@router.post("/calculate", response_model=OrderCalculation)
def calculate(payload: Cart) -> OrderCalculation:
    try:
        return calculate_order(payload, settings.MAX_EMPLOYEE_DISCOUNT_PERCENT)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
