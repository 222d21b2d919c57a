"""Table-driven coupon resolver for development and testing."""

from dataclasses import dataclass
from decimal import Decimal

from commerce.errors import InvalidCoupon
from commerce.pricing.coupons.port import CouponResolver
from commerce.pricing.pricing import ZERO, to_money


@dataclass(frozen=True)
class CouponRule:
    """A percentage or fixed-amount discount, optionally gated by a minimum subtotal."""

    percent_off: Decimal | None = None
    amount_off: Decimal | None = None
    minimum_subtotal: Decimal = ZERO


DEFAULT_COUPONS = {
    "SAVE10": CouponRule(percent_off=Decimal("10")),
    "WELCOME5": CouponRule(amount_off=Decimal("5.00")),
    "BIGSPENDER": CouponRule(amount_off=Decimal("50.00"), minimum_subtotal=Decimal("250.00")),
}


class StaticCouponResolver(CouponResolver):
    def __init__(self, coupons: dict[str, CouponRule] | None = None) -> None:
        self.coupons = dict(DEFAULT_COUPONS if coupons is None else coupons)

    def resolve_discount(self, coupon_code: str, subtotal: Decimal) -> Decimal:
        rule = self.coupons.get((coupon_code or "").strip().upper())
        if rule is None:
            raise InvalidCoupon(coupon_code)

        amount = to_money(subtotal)
        if amount < rule.minimum_subtotal:
            raise InvalidCoupon(
                coupon_code,
                reason=f"Coupon requires a minimum subtotal of {rule.minimum_subtotal}",
            )

        if rule.percent_off is not None:
            discount = to_money(amount * rule.percent_off / Decimal(100))
        else:
            discount = to_money(rule.amount_off)

        # A coupon never takes the subtotal below zero
        return min(discount, amount)
