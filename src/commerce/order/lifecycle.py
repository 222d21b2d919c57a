"""Order fulfillment transitions — commands and handler.

Every order command goes through ``transition()``: load the order, apply one
guarded state change, save it and log the move.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order
from commerce.order.queries import load_order

logger = structlog.get_logger(__name__)


def transition(order_id, change, action, **context):
    """Apply ``change(order)`` to the order and persist it."""
    order = load_order(order_id)
    from_status = order.status
    from_payment_status = order.payment_status

    result = change(order)

    current_domain.repository_for(Order).add(order)

    logger.info(
        "Order transitioned",
        action=action,
        order_id=str(order.id),
        order_number=order.order_number,
        from_status=from_status,
        to_status=order.status,
        from_payment_status=from_payment_status,
        to_payment_status=order.payment_status,
        **context,
    )
    return order if result is None else result


@commerce.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class StartProcessing:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class ShipOrder:
    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)


@commerce.command(part_of="Order")
class MarkOutForDelivery:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)


@commerce.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        transition(command.order_id, lambda order: order.confirm(), "confirm")

    @handle(StartProcessing)
    def start_processing(self, command):
        transition(command.order_id, lambda order: order.start_processing(), "process")

    @handle(ShipOrder)
    def ship_order(self, command):
        transition(
            command.order_id,
            lambda order: order.ship(carrier=command.carrier, tracking_number=command.tracking_number),
            "ship",
            carrier=command.carrier,
            tracking_number=command.tracking_number,
        )

    @handle(MarkOutForDelivery)
    def mark_out_for_delivery(self, command):
        transition(command.order_id, lambda order: order.mark_out_for_delivery(), "out_for_delivery")

    @handle(DeliverOrder)
    def deliver_order(self, command):
        transition(command.order_id, lambda order: order.deliver(), "deliver")
