"""Tests for cart → order calculation."""
from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from kamdon.app.schemas.billing import Cart
from kamdon.app.services.errors import InvalidCart
from kamdon.app.services.orders import (
    add_to_cart,
    calculate_order,
    create_cart_item_from_product,
    remove_from_cart,
    update_cart_item_quantity,
)

TOLERANCE = Decimal("1e-6")


# ─── Worked examples ─────────────────────────────────────────────────────────


class TestScenarios:
    def test_simple_store_sale(self, simple_cart: Cart) -> None:
        calc = calculate_order(simple_cart)
        assert calc.subtotal_exclusive == Decimal("1998")
        assert calc.total_tax == Decimal("239.76")
        assert calc.grand_total == Decimal("2237.76")
        assert calc.payable_amount == Decimal("2238")
        assert calc.rounding_adjustment == Decimal("0.24")

    def test_mixed_gst_with_sale_prices(self, mixed_cart: Cart) -> None:
        calc = calculate_order(mixed_cart)
        assert calc.subtotal_exclusive == Decimal("8996")
        five, twelve = calc.gst_breakdown
        assert (five.rate, twelve.rate) == (5, 12)
        assert five.taxable == Decimal("4999")
        assert five.tax == Decimal("249.95")
        assert twelve.taxable == Decimal("3997")
        assert twelve.tax == Decimal("479.64")
        assert calc.total_tax == Decimal("729.59")
        assert calc.grand_total == Decimal("9725.59")
        assert calc.payable_amount == Decimal("9726")

    def test_employee_discount_uniform_rate(self, make_item) -> None:
        cart = Cart(
            items=(make_item(quantity=3, base_price=Decimal("2499")),),
            employee_discount=Decimal("10"),
        )
        calc = calculate_order(cart)
        assert calc.subtotal_exclusive == Decimal("7497")
        assert calc.discount_amount == Decimal("749.7")
        assert calc.taxable_after_discount == Decimal("6747.3")
        assert calc.total_tax == Decimal("809.676")
        assert calc.payable_amount == Decimal("7557")

    def test_totals_carry_quantities_and_split_tax(self, mixed_cart: Cart) -> None:
        calc = calculate_order(mixed_cart)
        assert calc.total_items == 3
        assert calc.total_quantity == 4
        assert calc.total_cgst + calc.total_sgst == calc.total_tax


# ─── Invariants ──────────────────────────────────────────────────────────────


class TestInvariants:
    @pytest.fixture(params=["simple", "mixed", "discounted", "inclusive"])
    def cart(self, request, simple_cart, mixed_cart, make_item) -> Cart:
        if request.param == "simple":
            return simple_cart
        if request.param == "mixed":
            return mixed_cart
        if request.param == "discounted":
            return mixed_cart.model_copy(update={"employee_discount": Decimal("7.5")})
        return Cart(
            items=(
                make_item(base_price=Decimal("1299"), gst_rate=18, is_tax_inclusive=True, quantity=3),
                make_item(product_id="p2", base_price=Decimal("449"), gst_rate=5, is_tax_inclusive=True),
            ),
            employee_discount=Decimal("3"),
        )

    def test_grand_total_reconciles(self, cart: Cart) -> None:
        calc = calculate_order(cart)
        expected = calc.subtotal_exclusive - calc.discount_amount + calc.total_tax
        assert abs(calc.grand_total - expected) <= TOLERANCE

    def test_subtotal_is_sum_of_line_bases(self, cart: Cart) -> None:
        calc = calculate_order(cart)
        assert sum(line.line_taxable_base for line in calc.lines) == calc.subtotal_exclusive

    def test_total_tax_is_sum_of_buckets(self, cart: Cart) -> None:
        calc = calculate_order(cart)
        assert sum(b.tax for b in calc.gst_breakdown) == calc.total_tax

    def test_payable_within_half_unit(self, cart: Cart) -> None:
        calc = calculate_order(cart)
        assert calc.payable_amount == calc.payable_amount.to_integral_value()
        assert abs(calc.payable_amount - calc.grand_total) <= Decimal("0.5")
        assert calc.rounding_adjustment == calc.payable_amount - calc.grand_total

    def test_line_total_matches_exclusive_times_rate(self, cart: Cart) -> None:
        for line in calculate_order(cart).lines:
            expected = line.unit_price_exclusive * line.quantity * (1 + Decimal(line.gst_rate) / 100)
            assert abs(line.line_total - expected) <= Decimal("0.0001")

    def test_deterministic(self, cart: Cart) -> None:
        first = calculate_order(cart)
        second = calculate_order(cart)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_inputs_not_mutated(self, cart: Cart) -> None:
        before = cart.model_dump()
        calculate_order(cart)
        assert cart.model_dump() == before


class TestEquivalences:
    def test_inclusive_and_exclusive_pay_the_same(self, make_item) -> None:
        inclusive = Cart(items=(make_item(base_price=Decimal("112"), is_tax_inclusive=True),))
        exclusive = Cart(items=(make_item(base_price=Decimal("100")),))
        assert calculate_order(inclusive).payable_amount == calculate_order(exclusive).payable_amount

    def test_zero_discount_equals_omitted_discount(self, make_item) -> None:
        items = (make_item(quantity=2), make_item(product_id="p2", gst_rate=5))
        explicit = calculate_order(Cart(items=items, employee_discount=Decimal("0")))
        omitted = calculate_order(Cart(items=items))
        assert explicit == omitted

    def test_discount_scales_every_bucket(self, mixed_cart: Cart) -> None:
        full = calculate_order(mixed_cart)
        discounted = calculate_order(
            mixed_cart.model_copy(update={"employee_discount": Decimal("10")})
        )
        for before, after in zip(full.gst_breakdown, discounted.gst_breakdown):
            assert after.rate == before.rate
            assert after.taxable == before.taxable * Decimal("0.9")
            assert after.tax == after.taxable * (Decimal(after.rate) / 100)


class TestImmutableResult:
    def test_rate_buckets_cannot_be_replaced(self, mixed_cart: Cart) -> None:
        calc = calculate_order(mixed_cart)
        with pytest.raises(TypeError):
            calc.gst_breakdown[0] = calc.gst_breakdown[1]
        with pytest.raises(ValidationError):
            calc.gst_breakdown = ()

    def test_bucket_amounts_cannot_be_changed(self, mixed_cart: Cart) -> None:
        calc = calculate_order(mixed_cart)
        with pytest.raises(ValidationError):
            calc.gst_breakdown[0].tax = Decimal("0")

    def test_breakdown_is_a_rate_sorted_tuple(self, mixed_cart: Cart) -> None:
        calc = calculate_order(mixed_cart)
        assert isinstance(calc.gst_breakdown, tuple)
        assert [b.rate for b in calc.gst_breakdown] == [5, 12]


# ─── Validation ──────────────────────────────────────────────────────────────


class TestInvalidCart:
    def test_empty_cart(self) -> None:
        with pytest.raises(InvalidCart, match="at least one item"):
            calculate_order(Cart())

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity(self, make_item, quantity: int) -> None:
        with pytest.raises(InvalidCart, match="quantity"):
            calculate_order(Cart(items=(make_item(quantity=quantity),)))

    @pytest.mark.parametrize("rate", [3, 15, 40])
    def test_unknown_gst_rate(self, make_item, rate: int) -> None:
        with pytest.raises(InvalidCart, match="GST rate"):
            calculate_order(Cart(items=(make_item(gst_rate=rate),)))

    @pytest.mark.parametrize("discount", ["-1", "100.01"])
    def test_discount_out_of_range(self, make_item, discount: str) -> None:
        with pytest.raises(InvalidCart, match="Employee discount"):
            calculate_order(Cart(items=(make_item(),), employee_discount=Decimal(discount)))

    def test_discount_above_store_cap(self, make_item) -> None:
        cart = Cart(items=(make_item(),), employee_discount=Decimal("15"))
        with pytest.raises(InvalidCart):
            calculate_order(cart, max_employee_discount=Decimal("10"))

    def test_full_discount_is_allowed(self, make_item) -> None:
        calc = calculate_order(Cart(items=(make_item(),), employee_discount=Decimal("100")))
        assert calc.payable_amount == Decimal("0")

    def test_negative_price(self, make_item) -> None:
        with pytest.raises(InvalidCart, match="negative"):
            calculate_order(Cart(items=(make_item(base_price=Decimal("-1")),)))

    def test_line_discount_out_of_range(self, make_item) -> None:
        with pytest.raises(InvalidCart, match="line discount"):
            calculate_order(Cart(items=(make_item(line_discount_percent=Decimal("120")),)))

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            calculate_order(Cart())


# ─── Cart helpers ────────────────────────────────────────────────────────────


class TestCartHelpers:
    def test_create_item_from_product(self) -> None:
        item = create_cart_item_from_product({
            "id": "p-1", "name": "Silk Saree", "sku": "SAR-1", "category": "women",
            "basePrice": 4999, "salePrice": 3999, "isOnSale": True,
            "gstRate": 5, "isTaxInclusive": True,
        }, quantity=2)
        assert item.quantity == 2
        assert item.sale_price == Decimal("3999")
        assert item.is_tax_inclusive is True

    def test_sale_price_ignored_when_not_on_sale(self) -> None:
        item = create_cart_item_from_product({
            "id": "p-1", "name": "Saree", "sku": "S", "category": "women",
            "basePrice": 4999, "salePrice": 3999, "isOnSale": False, "gstRate": 5,
        })
        assert item.sale_price is None

    def test_create_item_requires_product_id(self) -> None:
        with pytest.raises(InvalidCart):
            create_cart_item_from_product({"name": "No id"})

    def test_add_merges_same_product(self, make_item) -> None:
        cart = add_to_cart(Cart(), make_item(quantity=1))
        cart = add_to_cart(cart, make_item(quantity=2))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_add_returns_new_cart(self, make_item) -> None:
        original = Cart()
        updated = add_to_cart(original, make_item())
        assert original.items == ()
        assert len(updated.items) == 1

    def test_update_and_remove(self, make_item) -> None:
        cart = Cart(items=(make_item(), make_item(product_id="p2")))
        cart = update_cart_item_quantity(cart, "p2", 5)
        assert [i.quantity for i in cart.items] == [1, 5]
        cart = remove_from_cart(cart, "prod-1")
        assert [i.product_id for i in cart.items] == ["p2"]

    def test_update_rejects_zero_quantity(self, make_item) -> None:
        with pytest.raises(InvalidCart):
            update_cart_item_quantity(Cart(items=(make_item(),)), "prod-1", 0)
