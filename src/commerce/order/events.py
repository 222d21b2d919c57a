"""Domain events for the Order aggregate.

All events are versioned, immutable facts. The Order is event sourced, so
these events are the order's only persisted state and its audit trail:
- Rebuilding aggregate state via @apply (event sourcing)
- Updating projections via projectors
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderCreated:
    """A new order was created from a shopping cart at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    cart_id = Identifier()
    items = Text(required=True)  # JSON: list of item dicts
    payment_method = String()
    shipping_method = String()
    coupon_code = String()
    subtotal = Float(required=True)
    tax_rate = Float()
    tax_amount = Float()
    shipping_cost = Float()
    discount_amount = Float()
    coupon_discount = Float()
    total_amount = Float(required=True)
    created_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderRepriced:
    """Price modifiers of a pending order changed and totals were recalculated."""

    __version__ = 1

    order_id = Identifier(required=True)
    coupon_code = String()
    subtotal = Float(required=True)
    tax_rate = Float()
    tax_amount = Float()
    shipping_cost = Float()
    discount_amount = Float()
    coupon_discount = Float()
    total_amount = Float(required=True)
    repriced_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderProcessing:
    """Fulfillment of the order has started."""

    __version__ = 1

    order_id = Identifier(required=True)
    started_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    carrier = String()
    tracking_number = String()
    shipped_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderOutForDelivery:
    __version__ = 1

    order_id = Identifier(required=True)
    dispatched_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before shipping; its stock goes back on the shelf."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    payment_status = String(required=True)
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderRefunded:
    """All or part of a paid order's amount was returned to the customer."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    reason = String()
    payment_status = String(required=True)
    refunded_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentReceived:
    __version__ = 1

    order_id = Identifier(required=True)
    transaction_id = String()
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentFailed:
    """The payment provider reported a failure; the order is terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    failed_at = DateTime(required=True)
