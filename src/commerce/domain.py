"""Commerce bounded context — Stock Ledger, Shopping Cart and Order Lifecycle.

Keeps product stock counts consistent under concurrent cart and checkout
activity, converts carts into immutable orders (event-sourced), and drives
orders through their status state machine with payment, refund and
cancellation rules.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
