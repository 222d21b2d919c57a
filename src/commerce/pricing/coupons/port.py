"""Coupon resolution port (abstract interface).

The domain treats coupon codes as opaque lookups: given a code and the
current subtotal, a resolver returns the discount amount or raises
``InvalidCoupon``. Swapping resolvers never touches cart or order code.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class CouponResolver(ABC):
    """Abstract coupon resolver."""

    @abstractmethod
    def resolve_discount(self, coupon_code: str, subtotal: Decimal) -> Decimal:
        """Return the discount for ``coupon_code`` against ``subtotal``."""
        ...
