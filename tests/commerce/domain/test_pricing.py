"""Tests for the pricing engine — pure money arithmetic."""

from dataclasses import dataclass
from decimal import Decimal

import pytest
from commerce.pricing.pricing import (
    ShippingMethod,
    calculate_totals,
    line_total,
    shipping_cost,
    subtotal,
    tax,
    total,
)


@dataclass
class Line:
    unit_price: float
    quantity: int
    discount: float = 0.0


class TestLineTotal:
    def test_price_times_quantity(self):
        assert line_total(19.99, 3) == Decimal("59.97")

    def test_discount_is_subtracted(self):
        assert line_total(10.0, 2, discount=5.0) == Decimal("15.00")

    def test_floored_at_zero(self):
        assert line_total(10.0, 1, discount=25.0) == Decimal("0.00")


class TestSubtotal:
    def test_sums_line_totals(self):
        lines = [Line(100.0, 2), Line(0.5, 3, discount=0.25)]
        assert subtotal(lines) == Decimal("201.25")

    def test_empty_is_zero(self):
        assert subtotal([]) == Decimal("0")

    def test_items_without_discount_attribute(self):
        @dataclass
        class Bare:
            unit_price: float
            quantity: int

        assert subtotal([Bare(2.5, 4)]) == Decimal("10.00")


class TestTax:
    def test_percentage_of_amount(self):
        assert tax(200, 10) == Decimal("20.00")

    def test_rounds_half_up(self):
        # 1.25 * 10% = 0.125
        assert tax(Decimal("1.25"), 10) == Decimal("0.13")

    def test_zero_rate(self):
        assert tax(99.99, 0) == Decimal("0")


class TestTotal:
    def test_adds_tax_and_shipping_and_subtracts_discounts(self):
        assert total(200, 20, 5.99, 10, 5) == Decimal("210.99")

    def test_never_negative(self):
        assert total(10, 0, 0, 15, 5) == Decimal("0")


class TestShippingTariff:
    @pytest.mark.parametrize(
        "method,expected",
        [
            (ShippingMethod.STANDARD, Decimal("5.99")),
            (ShippingMethod.EXPRESS, Decimal("12.99")),
            (ShippingMethod.OVERNIGHT, Decimal("24.99")),
            (ShippingMethod.FREE_SHIPPING, Decimal("0")),
            (ShippingMethod.PICKUP, Decimal("0")),
        ],
    )
    def test_cost_per_method(self, method, expected):
        assert shipping_cost(method) == expected

    def test_accepts_stored_value(self):
        assert shipping_cost("Express") == Decimal("12.99")


class TestCalculateTotals:
    def test_two_units_at_hundred_with_ten_percent_tax_and_standard_shipping(self):
        totals = calculate_totals(
            [Line(100.0, 2)],
            tax_rate=10,
            shipping=shipping_cost(ShippingMethod.STANDARD),
        )
        assert totals.subtotal == Decimal("200.00")
        assert totals.tax_amount == Decimal("20.00")
        assert totals.total_amount == Decimal("225.99")

    def test_is_idempotent(self):
        lines = [Line(12.34, 3), Line(5.0, 1, discount=1.0)]
        first = calculate_totals(lines, tax_rate=7.5, shipping=5.99, discount=2, coupon_discount=3)
        second = calculate_totals(lines, tax_rate=7.5, shipping=5.99, discount=2, coupon_discount=3)
        assert first == second

    def test_as_floats(self):
        totals = calculate_totals([Line(10.0, 1)], tax_rate=10, shipping=0)
        assert totals.as_floats() == {
            "subtotal": 10.0,
            "tax_rate": 10.0,
            "tax_amount": 1.0,
            "shipping_cost": 0.0,
            "discount_amount": 0.0,
            "coupon_discount": 0.0,
            "total_amount": 11.0,
        }
