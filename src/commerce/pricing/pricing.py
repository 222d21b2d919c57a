"""Pricing Engine — pure money arithmetic for carts and orders.

All functions are side-effect free. Amounts are computed with ``Decimal`` and
rounded to cents half-up; callers persist them as floats.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")
ZERO = Decimal("0")


class ShippingMethod(Enum):
    STANDARD = "Standard"
    EXPRESS = "Express"
    OVERNIGHT = "Overnight"
    FREE_SHIPPING = "Free_Shipping"
    PICKUP = "Pickup"


SHIPPING_TARIFF = {
    ShippingMethod.STANDARD: Decimal("5.99"),
    ShippingMethod.EXPRESS: Decimal("12.99"),
    ShippingMethod.OVERNIGHT: Decimal("24.99"),
    ShippingMethod.FREE_SHIPPING: ZERO,
    ShippingMethod.PICKUP: ZERO,
}


def to_money(value) -> Decimal:
    """Convert a float/int/str/Decimal amount to a cent-rounded Decimal."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def shipping_cost(method) -> Decimal:
    return SHIPPING_TARIFF[ShippingMethod(method)]


def line_total(unit_price, quantity, discount=0) -> Decimal:
    """``unit_price * quantity - discount``, floored at zero."""
    total = to_money(unit_price) * quantity - to_money(discount)
    return max(ZERO, to_money(total))


def subtotal(items: Iterable) -> Decimal:
    """Sum of line totals.

    Items only need ``unit_price`` and ``quantity`` attributes; ``discount``
    is optional.
    """
    return sum(
        (line_total(item.unit_price, item.quantity, getattr(item, "discount", 0) or 0) for item in items),
        ZERO,
    )


def tax(amount, rate) -> Decimal:
    """``amount * rate / 100`` rounded to cents, half-up."""
    if not rate:
        return ZERO
    return (to_money(amount) * Decimal(str(rate)) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def total(subtotal_amount, tax_amount, shipping, discount, coupon_discount) -> Decimal:
    """``max(0, subtotal + tax + shipping - discount - coupon_discount)``."""
    amount = (
        to_money(subtotal_amount)
        + to_money(tax_amount)
        + to_money(shipping)
        - to_money(discount)
        - to_money(coupon_discount)
    )
    return max(ZERO, amount)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    coupon_discount: Decimal
    total_amount: Decimal

    def as_floats(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax_rate": float(self.tax_rate),
            "tax_amount": float(self.tax_amount),
            "shipping_cost": float(self.shipping_cost),
            "discount_amount": float(self.discount_amount),
            "coupon_discount": float(self.coupon_discount),
            "total_amount": float(self.total_amount),
        }


def calculate_totals(items, tax_rate=0, shipping=0, discount=0, coupon_discount=0) -> Totals:
    """Compute every amount of an order or cart in one pass.

    Idempotent: calling it again with the same inputs yields the same totals.
    """
    sub = subtotal(items)
    tax_amount = tax(sub, tax_rate)
    return Totals(
        subtotal=sub,
        tax_rate=Decimal(str(tax_rate or 0)),
        tax_amount=tax_amount,
        shipping_cost=to_money(shipping),
        discount_amount=to_money(discount),
        coupon_discount=to_money(coupon_discount),
        total_amount=total(sub, tax_amount, shipping, discount, coupon_discount),
    )
