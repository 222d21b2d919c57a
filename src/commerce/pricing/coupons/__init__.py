"""Coupon lookup used by carts, checkout and order repricing.

Carts resolve a code to a discount when it is applied and again whenever
their lines change. Checkout and order repricing do the same for the order total.
All of them ask ``get_coupon_resolver()`` so a promotions service can replace the
built-in code table without touching any caller.
"""

from commerce.pricing.coupons.port import CouponResolver
from commerce.pricing.coupons.static_adapter import StaticCouponResolver

_current_resolver: CouponResolver | None = None


def get_coupon_resolver() -> CouponResolver:
    """The resolver carts and orders price coupons with.

    Falls back to the built-in ``StaticCouponResolver`` code table.
    """
    global _current_resolver
    if _current_resolver is None:
        _current_resolver = StaticCouponResolver()
    return _current_resolver


def set_coupon_resolver(resolver: CouponResolver) -> None:
    """Route every coupon lookup to ``resolver``, e.g. one with extra campaign codes."""
    global _current_resolver
    _current_resolver = resolver


def reset_coupon_resolver() -> None:
    """Go back to the built-in code table on the next lookup."""
    global _current_resolver
    _current_resolver = None
