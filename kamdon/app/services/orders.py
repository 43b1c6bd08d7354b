from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from kamdon.app.schemas.billing import (
    CalculatedLine,
    Cart,
    CartItem,
    OrderCalculation,
)
from kamdon.app.services.errors import InvalidCart
from kamdon.app.services.tax import (
    HUNDRED,
    VALID_GST_RATES,
    ZERO,
    aggregate_by_rate,
    discounted_unit_price,
    effective_unit_price,
    make_bucket,
    normalize_unit,
    rate_fraction,
    round_payable,
    split_cgst_sgst,
)


# ── Validation ───────────────────────────────────────────────────────────────


def _validate_item(index: int, item: CartItem) -> None:
    label = f"Item {index + 1} ({item.sku})"
    if item.quantity <= 0:
        raise InvalidCart(f"{label}: quantity must be greater than zero")
    if item.gst_rate not in VALID_GST_RATES:
        allowed = ", ".join(str(r) for r in sorted(VALID_GST_RATES))
        raise InvalidCart(f"{label}: GST rate must be one of {allowed}")
    if effective_unit_price(item) < 0:
        raise InvalidCart(f"{label}: unit price cannot be negative")
    if item.line_discount_percent is not None and not (
        ZERO <= item.line_discount_percent <= HUNDRED
    ):
        raise InvalidCart(f"{label}: line discount must be between 0 and 100")


def _validate_cart(cart: Cart, max_employee_discount: Decimal) -> None:
    if not cart.items:
        raise InvalidCart("Cart must contain at least one item")
    if not (ZERO <= cart.employee_discount <= max_employee_discount):
        raise InvalidCart(
            f"Employee discount must be between 0 and {max_employee_discount}%"
        )
    for index, item in enumerate(cart.items):
        _validate_item(index, item)


# ── Calculation ──────────────────────────────────────────────────────────────


def calculate_line(item: CartItem) -> CalculatedLine:
    """Price a single cart line in working precision (pre order discount)."""
    unit = normalize_unit(item)
    effective, unit_discount = discounted_unit_price(item)
    line_taxable_base = unit.unit_exclusive * item.quantity
    line_tax = unit.unit_tax * item.quantity
    line_cgst, line_sgst = split_cgst_sgst(line_tax)
    return CalculatedLine(
        product_id=item.product_id,
        name=item.name,
        sku=item.sku,
        category=item.category,
        quantity=item.quantity,
        gst_rate=item.gst_rate,
        is_tax_inclusive=item.is_tax_inclusive,
        unit_base_price=item.base_price,
        unit_sale_price=item.sale_price,
        effective_unit_price=effective,
        unit_discount=unit_discount,
        unit_price_exclusive=unit.unit_exclusive,
        unit_tax=unit.unit_tax,
        line_discount_amount=unit_discount * item.quantity,
        line_taxable_base=line_taxable_base,
        line_tax=line_tax,
        line_cgst=line_cgst,
        line_sgst=line_sgst,
        line_total=line_taxable_base + line_tax,
    )


def calculate_order(
    cart: Cart,
    max_employee_discount: Decimal = HUNDRED,
) -> OrderCalculation:
    """Produce the canonical monetary breakdown for *cart*.

    The employee discount is spread proportionally over the GST buckets: each
    bucket's taxable base is scaled by ``1 - discount/100`` and its tax is
    recomputed from the scaled base, so ``total_tax`` always equals the sum of
    bucket taxes. Only ``payable_amount`` is rounded; ``rounding_adjustment``
    carries the difference.

    Raises ``InvalidCart`` for empty carts, non-positive quantities, unknown
    GST rates, negative prices or a discount outside the permitted range.
    """
    _validate_cart(cart, max_employee_discount)

    lines = tuple(calculate_line(item) for item in cart.items)
    subtotal_exclusive = sum((line.line_taxable_base for line in lines), ZERO)
    discount_amount = subtotal_exclusive * cart.employee_discount / HUNDRED
    factor = 1 - cart.employee_discount / HUNDRED

    gst_breakdown = aggregate_by_rate(lines)
    if cart.employee_discount:
        gst_breakdown = tuple(
            make_bucket(b.rate, b.taxable * factor, b.taxable * factor * rate_fraction(b.rate))
            for b in gst_breakdown
        )

    taxable_after_discount = sum((b.taxable for b in gst_breakdown), ZERO)
    total_tax = sum((b.tax for b in gst_breakdown), ZERO)
    grand_total = taxable_after_discount + total_tax
    payable_amount = round_payable(grand_total)

    return OrderCalculation(
        lines=lines,
        total_items=len(lines),
        total_quantity=sum(line.quantity for line in lines),
        employee_discount=cart.employee_discount,
        subtotal_exclusive=subtotal_exclusive,
        total_line_discount=sum((line.line_discount_amount for line in lines), ZERO),
        discount_amount=discount_amount,
        taxable_after_discount=taxable_after_discount,
        gst_breakdown=gst_breakdown,
        total_cgst=sum((b.cgst for b in gst_breakdown), ZERO),
        total_sgst=sum((b.sgst for b in gst_breakdown), ZERO),
        total_tax=total_tax,
        grand_total=grand_total,
        rounding_adjustment=payable_amount - grand_total,
        payable_amount=payable_amount,
    )


# ── Cart management (pure, return new carts) ─────────────────────────────────


def create_cart_item_from_product(
    product: Mapping[str, Any], quantity: int = 1,
) -> CartItem:
    """Snapshot a product document into a cart line."""
    if not product.get("id"):
        raise InvalidCart("Valid product is required")
    if quantity <= 0:
        raise InvalidCart("Quantity must be greater than zero")
    is_on_sale = bool(product.get("isOnSale"))
    return CartItem(
        product_id=product["id"],
        name=product.get("name", ""),
        sku=product.get("sku", ""),
        category=product.get("category", "other"),
        quantity=quantity,
        base_price=Decimal(str(product.get("basePrice", 0))),
        sale_price=(
            Decimal(str(product["salePrice"]))
            if is_on_sale and product.get("salePrice") is not None
            else None
        ),
        gst_rate=product.get("gstRate", 0),
        is_tax_inclusive=bool(product.get("isTaxInclusive", False)),
        is_on_sale=is_on_sale,
    )


def add_to_cart(cart: Cart, new_item: CartItem) -> Cart:
    """Add *new_item*, merging quantity into an existing line for the same product."""
    if new_item.quantity <= 0:
        raise InvalidCart("Quantity must be greater than zero")
    items = list(cart.items)
    for index, item in enumerate(items):
        if item.product_id == new_item.product_id:
            items[index] = item.model_copy(
                update={"quantity": item.quantity + new_item.quantity}
            )
            break
    else:
        items.append(new_item)
    return cart.model_copy(update={"items": tuple(items)})


def update_cart_item_quantity(cart: Cart, product_id: str, quantity: int) -> Cart:
    if quantity <= 0:
        raise InvalidCart("Quantity must be greater than zero")
    items = tuple(
        item.model_copy(update={"quantity": quantity})
        if item.product_id == product_id
        else item
        for item in cart.items
    )
    return cart.model_copy(update={"items": items})


def remove_from_cart(cart: Cart, product_id: str) -> Cart:
    items = tuple(item for item in cart.items if item.product_id != product_id)
    return cart.model_copy(update={"items": items})
