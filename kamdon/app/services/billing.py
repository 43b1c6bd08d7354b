"""Turn a calculated order into an immutable, print-ready bill."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from kamdon.app.schemas.bill import (
    Bill,
    BillMetadata,
    BillTotals,
    OrderType,
    RateSummary,
    SellerInfo,
)
from kamdon.app.schemas.billing import OrderCalculation
from kamdon.app.services.errors import InvalidBillMetadata
from kamdon.app.services.formatting import DEFAULT_LOCALE, format_money

logger = logging.getLogger(__name__)

_ORDER_TYPES = {t.value for t in OrderType}
RECONCILE_TOLERANCE = Decimal("0.01")


def generate_bill_number(issued_at: datetime, order_id: str) -> str:
    """Return a bill number like BILL-261019-A1B2C3."""
    suffix = "".join(ch for ch in order_id if ch.isalnum())[-6:].upper()
    return f"BILL-{issued_at:%y%m%d}-{suffix:0>6}"


def _validate_metadata(metadata: BillMetadata) -> None:
    if metadata.order_type not in _ORDER_TYPES:
        allowed = ", ".join(sorted(_ORDER_TYPES))
        raise InvalidBillMetadata(
            f"Unknown order type '{metadata.order_type}' (expected one of {allowed})"
        )
    if not metadata.customer.name.strip():
        raise InvalidBillMetadata("Customer name is required")


def _rate_summary(calculation: OrderCalculation) -> tuple[RateSummary, ...]:
    summary = []
    for bucket in sorted(calculation.gst_breakdown, key=lambda b: b.rate):
        half_rate = Decimal(bucket.rate) / 2
        summary.append(RateSummary(
            rate=bucket.rate,
            taxable=bucket.taxable,
            tax=bucket.tax,
            cgst_rate=half_rate,
            cgst=bucket.cgst,
            sgst_rate=half_rate,
            sgst=bucket.sgst,
        ))
    return tuple(summary)


def generate_bill(
    calculation: OrderCalculation,
    metadata: BillMetadata,
    seller: SellerInfo,
    issued_at: datetime,
) -> Bill:
    """Wrap *calculation* with parties and identifiers into a write-once bill.

    Nothing is recalculated: lines and totals are copied from the
    calculation. Raises ``InvalidBillMetadata`` when the order type is unknown
    or the customer name is empty.
    """
    _validate_metadata(metadata)

    bill = Bill(
        bill_number=metadata.bill_number or generate_bill_number(issued_at, metadata.order_id),
        issued_at=issued_at,
        order_id=metadata.order_id,
        order_type=OrderType(metadata.order_type),
        employee_id=metadata.employee_id,
        employee_name=metadata.employee_name,
        exhibition_id=metadata.exhibition_id,
        seller=seller,
        customer=metadata.customer,
        lines=calculation.lines,
        totals=BillTotals(
            total_items=calculation.total_items,
            total_quantity=calculation.total_quantity,
            subtotal_exclusive=calculation.subtotal_exclusive,
            total_line_discount=calculation.total_line_discount,
            employee_discount=calculation.employee_discount,
            discount_amount=calculation.discount_amount,
            taxable_after_discount=calculation.taxable_after_discount,
            total_cgst=calculation.total_cgst,
            total_sgst=calculation.total_sgst,
            total_tax=calculation.total_tax,
            grand_total=calculation.grand_total,
            rounding_adjustment=calculation.rounding_adjustment,
            payable_amount=calculation.payable_amount,
        ),
        per_rate_summary=_rate_summary(calculation),
        payment_mode=metadata.payment_method,
        notes=metadata.notes,
    )
    logger.info(
        "Generated bill %s for order %s (payable %s)",
        bill.bill_number, bill.order_id, bill.totals.payable_amount,
    )
    return bill


def validate_bill(bill: Bill) -> list[str]:
    """Audit a bill before printing. Returns list of errors (empty = valid)."""
    errors: list[str] = []

    if not bill.bill_number:
        errors.append("Bill number is required")
    if not bill.order_id:
        errors.append("Order ID is required")
    if not bill.employee_id:
        errors.append("Employee ID is required")
    if not bill.employee_name:
        errors.append("Employee name is required")

    if not bill.seller.business_name:
        errors.append("Seller business name is required")
    if not bill.seller.gstin:
        errors.append("Seller GSTIN is required")

    if not bill.customer.name:
        errors.append("Customer name is required")
    if not bill.customer.phone:
        errors.append("Customer phone is required")

    if not bill.lines:
        errors.append("At least one line item is required")
    for index, line in enumerate(bill.lines, start=1):
        if not line.sku:
            errors.append(f"Line item {index}: SKU is required")
        if not line.name:
            errors.append(f"Line item {index}: Product name is required")
        if line.quantity <= 0:
            errors.append(f"Line item {index}: Quantity must be positive")
        if line.effective_unit_price < 0:
            errors.append(f"Line item {index}: Unit price cannot be negative")

    if bill.totals.payable_amount <= 0:
        errors.append("Payable amount must be positive")

    summary_tax = sum((s.tax for s in bill.per_rate_summary), Decimal("0"))
    if abs(summary_tax - bill.totals.total_tax) > RECONCILE_TOLERANCE:
        errors.append(
            f"Per-rate tax ({summary_tax}) does not reconcile with total tax "
            f"({bill.totals.total_tax})"
        )

    return errors


def format_bill_for_display(
    bill: Bill,
    locale: str = DEFAULT_LOCALE,
    timezone: str = "Asia/Kolkata",
) -> dict[str, object]:
    """Render the bill with display strings for every money amount."""
    issued = bill.issued_at
    if issued.tzinfo is not None:
        issued = issued.astimezone(ZoneInfo(timezone))

    def money(value: Decimal) -> str:
        return format_money(value, locale)

    totals = bill.totals
    return {
        "bill_number": bill.bill_number,
        "bill_date": issued.strftime("%d %b %Y, %I:%M %p"),
        "order_id": bill.order_id,
        "order_type": bill.order_type.value,
        "employee_name": bill.employee_name,
        "exhibition_id": bill.exhibition_id,
        "seller": bill.seller.model_dump(),
        "customer": bill.customer.model_dump(),
        "lines": [
            {
                "sku": line.sku,
                "product_name": line.name,
                "category": line.category.value,
                "quantity": line.quantity,
                "unit_price": money(line.effective_unit_price),
                "discount": money(line.line_discount_amount),
                "taxable_value": money(line.line_taxable_base),
                "gst_rate": f"{line.gst_rate}%",
                "cgst": money(line.line_cgst),
                "sgst": money(line.line_sgst),
                "line_total": money(line.line_total),
            }
            for line in bill.lines
        ],
        "gst_summary": [
            {
                "rate": f"{s.rate}%",
                "taxable": money(s.taxable),
                "cgst": money(s.cgst),
                "sgst": money(s.sgst),
                "tax": money(s.tax),
            }
            for s in bill.per_rate_summary
        ],
        "totals": {
            "total_items": totals.total_items,
            "total_quantity": totals.total_quantity,
            "subtotal": money(totals.subtotal_exclusive),
            "discount": money(totals.discount_amount),
            "taxable": money(totals.taxable_after_discount),
            "cgst": money(totals.total_cgst),
            "sgst": money(totals.total_sgst),
            "total_tax": money(totals.total_tax),
            "grand_total": money(totals.grand_total),
            "rounded_off": money(totals.rounding_adjustment),
            "payable": money(totals.payable_amount),
        },
        "payment_mode": bill.payment_mode,
        "notes": bill.notes,
    }
