"""Human-readable order numbers: ``ORD-YYYYMMDD-XXXXXX``."""

import secrets

from commerce.projections.order_summary import find_by_order_number
from commerce.utils import clock

PREFIX = "ORD"


def generate_order_number(today=None) -> str:
    """Draw random six-digit suffixes until one is not taken for the day."""
    date_part = (today or clock.now()).strftime("%Y%m%d")
    while True:
        candidate = f"{PREFIX}-{date_part}-{secrets.randbelow(1_000_000):06d}"
        if find_by_order_number(candidate) is None:
            return candidate
