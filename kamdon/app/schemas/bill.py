from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict

from kamdon.app.schemas.billing import CalculatedLine, Cart


class OrderType(str, Enum):
    STORE = "store"
    EXHIBITION = "exhibition"
    PREBOOKING = "prebooking"


# ─── Parties ─────────────────────────────────────────────────────────────────


class SellerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    business_name: str
    gstin: str
    store_address: str
    state_code: str
    phone: str = ""
    email: str = ""


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    phone: str = ""
    address: str = ""


class BillMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    # Validated by the bill builder so an unknown value surfaces as
    # InvalidBillMetadata instead of a schema error.
    order_type: str
    employee_id: str
    employee_name: str
    exhibition_id: str | None = None
    customer: CustomerInfo
    issued_at: datetime | None = None
    bill_number: str | None = None
    payment_method: str = "CASH"
    notes: str = ""


# ─── Bill ────────────────────────────────────────────────────────────────────


class RateSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: int
    taxable: Decimal
    tax: Decimal
    cgst_rate: Decimal
    cgst: Decimal
    sgst_rate: Decimal
    sgst: Decimal


class BillTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_items: int
    total_quantity: int
    subtotal_exclusive: Decimal
    total_line_discount: Decimal
    employee_discount: Decimal
    discount_amount: Decimal
    taxable_after_discount: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_tax: Decimal
    grand_total: Decimal
    rounding_adjustment: Decimal
    payable_amount: Decimal


class Bill(BaseModel):
    """Print-ready invoice record. Write-once: every nested value is frozen."""

    model_config = ConfigDict(frozen=True)

    bill_number: str
    issued_at: datetime
    order_id: str
    order_type: OrderType
    employee_id: str
    employee_name: str
    exhibition_id: str | None
    seller: SellerInfo
    customer: CustomerInfo
    lines: tuple[CalculatedLine, ...]
    totals: BillTotals
    per_rate_summary: tuple[RateSummary, ...]
    payment_mode: str
    notes: str


# ─── Requests ────────────────────────────────────────────────────────────────


class BillRequest(BaseModel):
    cart: Cart
    metadata: BillMetadata
    issued_at: datetime | None = None
