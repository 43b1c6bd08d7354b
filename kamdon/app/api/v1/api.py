from fastapi import APIRouter

from kamdon.app.api.v1.endpoints import analytics, bills, orders

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
