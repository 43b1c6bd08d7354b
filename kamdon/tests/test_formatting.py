from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from kamdon.app.services.formatting import format_money


class TestFormatMoney:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (Decimal("1234567.89"), "₹12,34,567.89"),
            (Decimal("999"), "₹999.00"),
            (Decimal("1000"), "₹1,000.00"),
            (Decimal("100000"), "₹1,00,000.00"),
            (Decimal("0"), "₹0.00"),
        ],
    )
    def test_indian_grouping(self, amount: Decimal, expected: str) -> None:
        assert format_money(amount) == expected

    def test_hindi_locale_uses_indian_grouping(self) -> None:
        assert format_money(Decimal("1234567.89"), "hi-IN") == "₹12,34,567.89"

    def test_us_grouping(self) -> None:
        assert format_money(Decimal("1234567.89"), "en-US") == "$1,234,567.89"

    def test_rounds_half_up_to_cents(self) -> None:
        assert format_money(Decimal("2237.765")) == "₹2,237.77"
        assert format_money(Decimal("0.004")) == "₹0.00"

    def test_negative_amount(self) -> None:
        assert format_money(Decimal("-1500.5")) == "-₹1,500.50"

    def test_accepts_int_and_str(self) -> None:
        assert format_money(2238) == "₹2,238.00"
        assert format_money("9725.59") == "₹9,725.59"

    def test_unknown_locale_falls_back(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="kamdon.app.services.formatting"):
            assert format_money(Decimal("1234567.89"), "fr-FR") == "₹12,34,567.89"
        assert "fr-FR" in caplog.text
