"""Tests for the currency helpers."""

from decimal import Decimal

import pytest

from utils.money import round2, percent_of, to_decimal, to_paise


class TestRound2:
    @pytest.mark.parametrize("value, expected", [
        (Decimal("0.285"), Decimal("0.29")),
        (0.285, Decimal("0.29")),
        ("1.005", Decimal("1.01")),
        (Decimal("2.675"), Decimal("2.68")),
        (10, Decimal("10.00")),
        (Decimal("-0.005"), Decimal("-0.01")),
    ])
    def test_half_up(self, value, expected):
        assert round2(value) == expected

    @pytest.mark.parametrize("value", [Decimal("0.125"), Decimal("99.995"), 1 / 3, "123.4567"])
    def test_idempotent(self, value):
        once = round2(value)
        assert round2(once) == once

    def test_result_has_two_places(self):
        assert str(round2(5)) == "5.00"


class TestPercentOf:
    def test_tax_on_thousand(self):
        assert percent_of(1000, 18) == Decimal("180.00")

    def test_rounds_once(self):
        # 18% of 333.33 = 59.9994
        assert percent_of(Decimal("333.33"), 18) == Decimal("60.00")

    def test_zero_amount(self):
        assert percent_of(0, 18) == Decimal("0.00")


class TestConversions:
    def test_none_is_zero(self):
        assert to_decimal(None) == 0

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_to_paise(self):
        assert to_paise(Decimal("649.00")) == 64900
        assert to_paise(Decimal("10.005")) == 1001
