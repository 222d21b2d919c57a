"""Payment callbacks — commands and handler.

A failed payment ends the order; stock deducted for an order that never
shipped is returned.
"""

from protean import handle
from protean.fields import Identifier, String

from commerce.domain import commerce
from commerce.order.cancellation import restore_order_stock
from commerce.order.lifecycle import transition
from commerce.order.order import Order, OrderStatus
from commerce.utils.concurrency import process_with_retry

_UNSHIPPED = {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}


@commerce.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=255)


@commerce.command(part_of="Order")
class MarkPaymentFailed:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(MarkOrderPaid)
    def mark_paid(self, command):
        transition(
            command.order_id,
            lambda order: order.mark_paid(command.transaction_id),
            "mark_paid",
            transaction_id=command.transaction_id,
        )

    @handle(MarkPaymentFailed)
    def mark_payment_failed(self, command):
        def _fail(order):
            unshipped = order.current_status in _UNSHIPPED
            order.mark_payment_failed(reason=command.reason)
            if unshipped:
                restore_order_stock(order, reason=f"Payment failed for order {order.order_number}")

        transition(command.order_id, _fail, "mark_payment_failed", reason=command.reason)


def fail_payment(order_id, reason=None):
    """Record a failed payment, retrying when a concurrent stock change wins the race."""
    return process_with_retry(MarkPaymentFailed(order_id=str(order_id), reason=reason))
