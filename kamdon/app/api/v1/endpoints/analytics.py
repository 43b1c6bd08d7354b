from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, HTTPException, Request, status

from kamdon.app.core.config import settings
from kamdon.app.schemas.analytics import (
    AnalyticsBundle,
    AnalyticsRequest,
    FilterOptions,
    RawData,
)
from kamdon.app.services.analytics import compute_analytics, list_filter_options

router = APIRouter()


@router.post("", response_model=AnalyticsBundle)
def analytics(payload: AnalyticsRequest, request: Request) -> AnalyticsBundle:
    now = payload.now or datetime.now(ZoneInfo(settings.STORE_TIMEZONE))
    try:
        return compute_analytics(
            payload,
            payload.filter,
            now,
            lang=getattr(request.state, "language", "en"),
            low_stock_limit=settings.LOW_STOCK_LIMIT,
            forecast_days=settings.FORECAST_DAYS,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/filter-options", response_model=FilterOptions)
def filter_options(payload: RawData) -> FilterOptions:
    return list_filter_options(payload)
