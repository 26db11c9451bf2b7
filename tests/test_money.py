"""
Tests for currency rounding, formatting and discount parsing.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from till.exceptions import ValidationError
from till.money import ZERO, day_key, format_baht, parse_amount, parse_discount, to_money


class TestParseDiscount:
    """Cashier-entered discounts resolve to an amount."""

    def test_percentage_of_subtotal(self):
        assert parse_discount("10%", Decimal("200")) == Decimal("20.00")

    def test_absolute_amount(self):
        assert parse_discount("20", Decimal("200")) == Decimal("20.00")

    def test_whitespace_is_ignored(self):
        assert parse_discount("  15% ", Decimal("100")) == Decimal("15.00")

    @pytest.mark.parametrize("raw", ["", "abc", "-5", "NaN", "Infinity%", "%"])
    def test_invalid_input_is_no_discount(self, raw):
        assert parse_discount(raw, Decimal("200")) == ZERO


class TestMoneyHelpers:
    def test_to_money_rounds_half_up(self):
        assert to_money(Decimal("1.005")) == Decimal("1.01")
        assert to_money("2.344") == Decimal("2.34")

    def test_format_baht_groups_thousands(self):
        assert format_baht(Decimal("1234.5")) == "฿1,234.50"

    def test_day_key(self):
        assert day_key(datetime(2024, 5, 1, 23, 59)) == "20240501"


class TestParseAmount:
    def test_rounds_to_cents(self):
        assert parse_amount("12.345") == Decimal("12.35")
        assert parse_amount(Decimal("500")) == Decimal("500.00")

    @pytest.mark.parametrize("raw", ["abc", "", "1" * 30, "NaN", "Infinity", "sNaN"])
    def test_unusable_amount_is_a_validation_error(self, raw):
        with pytest.raises(ValidationError, match="not a valid amount"):
            parse_amount(raw)
