from __future__ import annotations

from kamdon.app.core.config import settings
from kamdon.app.schemas.bill import SellerInfo


def get_seller_info() -> SellerInfo:
    """Seller block for bills, taken from settings."""
    return SellerInfo(
        business_name=settings.SELLER_BUSINESS_NAME,
        gstin=settings.SELLER_GSTIN,
        store_address=settings.SELLER_STORE_ADDRESS,
        state_code=settings.SELLER_STATE_CODE,
        phone=settings.SELLER_PHONE,
        email=settings.SELLER_EMAIL,
    )
