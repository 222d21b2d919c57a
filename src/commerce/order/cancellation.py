"""Order cancellation and refund — commands and handler.

Stock for an order is deducted at checkout, so cancelling puts every line's
quantity back on the shelf. The restore happens in the same Unit of Work as
the cancellation.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.lifecycle import transition
from commerce.order.order import Order
from commerce.product.ledger import load_product
from commerce.product.product import Product
from commerce.utils.concurrency import process_with_retry

logger = structlog.get_logger(__name__)


def restore_order_stock(order, reason):
    """Return every line's deducted quantity to its product."""
    repo = current_domain.repository_for(Product)
    for item in order.items:
        product = load_product(item.product_id)
        product.restore_stock(item.quantity, reason=reason)
        repo.add(product)
        logger.info(
            "Stock restored",
            order_id=str(order.id),
            product_id=str(item.product_id),
            quantity=item.quantity,
            reason=reason,
        )


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    amount = Float()  # Optional, defaults to the order total
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        def _cancel(order):
            order.cancel(reason=command.reason)
            restore_order_stock(order, reason=f"Order {order.order_number} cancelled")

        transition(command.order_id, _cancel, "cancel", reason=command.reason)

    @handle(RefundOrder)
    def refund_order(self, command):
        transition(
            command.order_id,
            lambda order: order.refund(amount=command.amount, reason=command.reason),
            "refund",
            amount=command.amount,
        )


def cancel_order(order_id, reason=None):
    """Cancel an order, retrying when a concurrent stock change wins the race."""
    return process_with_retry(CancelOrder(order_id=str(order_id), reason=reason))
