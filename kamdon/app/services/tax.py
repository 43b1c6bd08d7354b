"""GST arithmetic: unit-price normalization and per-rate aggregation.

All amounts stay in full ``Decimal`` working precision; only the payable total
is ever rounded (see ``round_payable``).
"""
from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from kamdon.app.schemas.billing import CalculatedLine, CartItem, GstBucket, UnitTax

VALID_GST_RATES: frozenset[int] = frozenset({0, 5, 12, 18, 28})

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WHOLE_UNIT = Decimal("1")


def rate_fraction(gst_rate: int) -> Decimal:
    """12 -> Decimal('0.12')."""
    return Decimal(gst_rate) / HUNDRED


def effective_unit_price(item: CartItem) -> Decimal:
    """Sale price when the item is on sale and has one, otherwise the base price."""
    if item.is_on_sale and item.sale_price is not None:
        return item.sale_price
    return item.base_price


def discounted_unit_price(item: CartItem) -> tuple[Decimal, Decimal]:
    """Return ``(price_after_line_discount, unit_discount)`` for *item*."""
    price = effective_unit_price(item)
    if not item.line_discount_percent:
        return price, ZERO
    unit_discount = price * item.line_discount_percent / HUNDRED
    return price - unit_discount, unit_discount


def normalize_unit(item: CartItem) -> UnitTax:
    """Split the item's unit price into its tax-exclusive base and unit tax.

    Tax-inclusive prices are back-calculated (``p / (1 + r)``); exclusive
    prices get tax added on top (``p * r``). No rounding is applied.
    """
    price, _ = discounted_unit_price(item)
    rate = rate_fraction(item.gst_rate)
    if item.is_tax_inclusive:
        unit_exclusive = price / (1 + rate)
        return UnitTax(unit_exclusive=unit_exclusive, unit_tax=price - unit_exclusive)
    return UnitTax(unit_exclusive=price, unit_tax=price * rate)


def split_cgst_sgst(tax: Decimal) -> tuple[Decimal, Decimal]:
    """Intra-state GST is levied as equal central and state halves."""
    half = tax / 2
    return half, tax - half


def make_bucket(rate: int, taxable: Decimal, tax: Decimal) -> GstBucket:
    cgst, sgst = split_cgst_sgst(tax)
    return GstBucket(rate=rate, taxable=taxable, tax=tax, cgst=cgst, sgst=sgst)


def aggregate_by_rate(lines: Iterable[CalculatedLine]) -> tuple[GstBucket, ...]:
    """Sum taxable base and tax per GST rate, ascending by rate.

    Only rates present on at least one line get a bucket.
    """
    taxable: dict[int, Decimal] = {}
    tax: dict[int, Decimal] = {}
    for line in lines:
        taxable[line.gst_rate] = taxable.get(line.gst_rate, ZERO) + line.line_taxable_base
        tax[line.gst_rate] = tax.get(line.gst_rate, ZERO) + line.line_tax
    return tuple(make_bucket(rate, taxable[rate], tax[rate]) for rate in sorted(taxable))


def round_payable(amount: Decimal) -> Decimal:
    """Round half away from zero to whole currency units."""
    return amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
