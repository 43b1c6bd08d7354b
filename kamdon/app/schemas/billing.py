from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict


# ─── Cart (request) ──────────────────────────────────────────────────────────


class ProductCategory(str, Enum):
    MEN = "men"
    WOMEN = "women"
    KIDS = "kids"
    ACCESSORIES = "accessories"
    OTHER = "other"


class CartItem(BaseModel):
    """One product line as it sits in the cart (a snapshot of the product)."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    sku: str
    category: ProductCategory
    quantity: int
    base_price: Decimal
    sale_price: Decimal | None = None
    gst_rate: int
    is_tax_inclusive: bool = False
    is_on_sale: bool = False
    line_discount_percent: Decimal | None = None


class Cart(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[CartItem, ...] = ()
    employee_discount: Decimal = Decimal("0")


# ─── Calculation (response) ──────────────────────────────────────────────────


class UnitTax(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit_exclusive: Decimal
    unit_tax: Decimal


class CalculatedLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    sku: str
    category: ProductCategory
    quantity: int
    gst_rate: int
    is_tax_inclusive: bool
    unit_base_price: Decimal
    unit_sale_price: Decimal | None
    effective_unit_price: Decimal
    unit_discount: Decimal
    unit_price_exclusive: Decimal
    unit_tax: Decimal
    line_discount_amount: Decimal
    line_taxable_base: Decimal
    line_tax: Decimal
    line_cgst: Decimal
    line_sgst: Decimal
    line_total: Decimal


class GstBucket(BaseModel):
    """Taxable base and tax collected at one GST rate."""

    model_config = ConfigDict(frozen=True)

    rate: int
    taxable: Decimal
    tax: Decimal
    cgst: Decimal
    sgst: Decimal


class OrderCalculation(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: tuple[CalculatedLine, ...]
    total_items: int
    total_quantity: int
    employee_discount: Decimal
    subtotal_exclusive: Decimal
    total_line_discount: Decimal
    discount_amount: Decimal
    taxable_after_discount: Decimal
    gst_breakdown: tuple[GstBucket, ...]
    total_cgst: Decimal
    total_sgst: Decimal
    total_tax: Decimal
    grand_total: Decimal
    rounding_adjustment: Decimal
    payable_amount: Decimal
