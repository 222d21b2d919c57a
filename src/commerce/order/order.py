"""Order aggregate (Event Sourced) — an immutable snapshot of a cart plus a lifecycle.

The Order uses event sourcing: every state change is captured as a domain
event and the current state is rebuilt by replaying events via @apply
handlers. Line items and their prices are fixed at creation and never
re-derived from the live catalogue; only status, payment and price-modifier
fields change afterwards.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → OUT_FOR_DELIVERY → DELIVERED
    PENDING/CONFIRMED/PROCESSING → CANCELLED
    SHIPPED/DELIVERED (paid) → REFUNDED
    any non-terminal state → FAILED (payment failure)

Every transition checks its guard before raising an event, so a rejected
transition leaves the order untouched.
"""

import json
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from commerce.domain import commerce
from commerce.errors import EmptyCartCheckout, IllegalOrderState, InvalidQuantity
from commerce.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderOutForDelivery,
    OrderProcessing,
    OrderRefunded,
    OrderRepriced,
    OrderShipped,
    PaymentFailed,
    PaymentReceived,
)
from commerce.pricing.pricing import calculate_totals, line_total, to_money
from commerce.utils import clock


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out_For_Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"
    FAILED = "Failed"


class PaymentStatus(Enum):
    PENDING = "Pending"
    AUTHORIZED = "Authorized"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "Partially_Refunded"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    CREDIT_CARD = "Credit_Card"
    DEBIT_CARD = "Debit_Card"
    PAYPAL = "Paypal"
    BANK_TRANSFER = "Bank_Transfer"
    CASH_ON_DELIVERY = "Cash_On_Delivery"


# action -> (states it may start from, state it leads to)
_TRANSITIONS = {
    "confirm": ({OrderStatus.PENDING}, OrderStatus.CONFIRMED),
    "process": ({OrderStatus.CONFIRMED}, OrderStatus.PROCESSING),
    "ship": ({OrderStatus.PROCESSING}, OrderStatus.SHIPPED),
    "dispatch for delivery": ({OrderStatus.SHIPPED}, OrderStatus.OUT_FOR_DELIVERY),
    "deliver": ({OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY}, OrderStatus.DELIVERED),
    "cancel": (
        {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING},
        OrderStatus.CANCELLED,
    ),
    "refund": ({OrderStatus.SHIPPED, OrderStatus.DELIVERED}, OrderStatus.REFUNDED),
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@commerce.value_object(part_of="Order")
class OrderPricing:
    """Financial summary of an order.

    Always produced by ``pricing.calculate_totals`` so that
    ``total_amount = max(0, subtotal + tax + shipping - discount - coupon)``.
    """

    subtotal = Float(default=0.0)
    tax_rate = Float(default=0.0)
    tax_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount_amount = Float(default=0.0)
    coupon_discount = Float(default=0.0)
    total_amount = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    """A line captured from the cart at checkout: product, name and price as they were then."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    sku = String(max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0)

    @property
    def line_total(self):
        return line_total(self.unit_price, self.quantity, self.discount or 0)


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@commerce.aggregate(is_event_sourced=True)
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    payment_method = String(max_length=50)
    shipping_method = String(max_length=50)
    coupon_code = String(max_length=100)
    payment_transaction_id = String(max_length=255)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    cancellation_reason = String(max_length=500)
    refund_amount = Float()
    refund_reason = String(max_length=500)
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    confirmed_at = DateTime()
    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    refunded_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create_from_cart(
        cls,
        order_number,
        customer_id,
        items_data,
        cart_id=None,
        payment_method=None,
        shipping_method=None,
        shipping_cost=0,
        tax_rate=0,
        discount_amount=0,
        coupon_code=None,
        coupon_discount=0,
    ):
        """Snapshot cart lines into a new PENDING order.

        Args:
            items_data: List of dicts with product_id, product_name, sku,
                        quantity, unit_price and optional discount.
        """
        if not items_data:
            raise EmptyCartCheckout(cart_id)

        # Pre-generate item IDs for deterministic replay
        items_with_ids = [{"discount": 0.0, **item, "id": str(uuid4())} for item in items_data]
        lines = [OrderItem(**item) for item in items_with_ids]
        totals = calculate_totals(
            lines,
            tax_rate=tax_rate,
            shipping=shipping_cost,
            discount=discount_amount,
            coupon_discount=coupon_discount,
        ).as_floats()

        order = cls._create_new()
        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                cart_id=str(cart_id) if cart_id else None,
                items=json.dumps(items_with_ids),
                payment_method=payment_method,
                shipping_method=shipping_method,
                coupon_code=coupon_code,
                created_at=clock.now(),
                **totals,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def current_payment_status(self) -> PaymentStatus:
        return PaymentStatus(self.payment_status)

    def _assert_can(self, action):
        allowed_from, _ = _TRANSITIONS[action]
        if self.current_status not in allowed_from:
            raise IllegalOrderState(self.id, self.status, action)

    def can_be_cancelled(self) -> bool:
        return self.current_status in _TRANSITIONS["cancel"][0]

    def can_be_refunded(self) -> bool:
        return (
            self.current_status in _TRANSITIONS["refund"][0]
            and self.current_payment_status == PaymentStatus.PAID
        )

    @property
    def total_amount(self) -> float:
        return self.pricing.total_amount if self.pricing else 0.0

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def assert_repriceable(self):
        if self.current_status != OrderStatus.PENDING or self.current_payment_status != PaymentStatus.PENDING:
            raise IllegalOrderState(
                self.id,
                self.status,
                "reprice",
                reason=f"Only pending, unpaid orders can be repriced (payment is {self.payment_status})",
            )

    def reprice(
        self,
        tax_rate=None,
        shipping_cost=None,
        discount_amount=None,
        coupon_code=None,
        coupon_discount=None,
    ):
        """Change price modifiers and re-run the totals calculation.

        Only a PENDING, unpaid order can be repriced. Unspecified modifiers
        keep their current values, so calling it with the same inputs yields
        the same totals.
        """
        self.assert_repriceable()

        current = self.pricing
        totals = calculate_totals(
            self.items,
            tax_rate=current.tax_rate if tax_rate is None else tax_rate,
            shipping=current.shipping_cost if shipping_cost is None else shipping_cost,
            discount=current.discount_amount if discount_amount is None else discount_amount,
            coupon_discount=current.coupon_discount if coupon_discount is None else coupon_discount,
        ).as_floats()

        self.raise_(
            OrderRepriced(
                order_id=str(self.id),
                coupon_code=self.coupon_code if coupon_code is None else coupon_code,
                repriced_at=clock.now(),
                **totals,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def confirm(self):
        self._assert_can("confirm")
        self.raise_(OrderConfirmed(order_id=str(self.id), confirmed_at=clock.now()))

    def start_processing(self):
        self._assert_can("process")
        self.raise_(OrderProcessing(order_id=str(self.id), started_at=clock.now()))

    def ship(self, carrier=None, tracking_number=None):
        self._assert_can("ship")
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                carrier=carrier,
                tracking_number=tracking_number,
                shipped_at=clock.now(),
            )
        )

    def mark_out_for_delivery(self):
        self._assert_can("dispatch for delivery")
        self.raise_(OrderOutForDelivery(order_id=str(self.id), dispatched_at=clock.now()))

    def deliver(self):
        self._assert_can("deliver")
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=clock.now()))

    def cancel(self, reason=None):
        """Cancel before shipping. The caller returns the stock."""
        self._assert_can("cancel")

        payment_status = self.current_payment_status
        if payment_status in (PaymentStatus.PENDING, PaymentStatus.AUTHORIZED):
            payment_status = PaymentStatus.CANCELLED

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=self.status,
                reason=reason,
                payment_status=payment_status.value,
                cancelled_at=clock.now(),
            )
        )

    def refund(self, amount=None, reason=None):
        """Refund a paid order that has shipped.

        ``amount`` defaults to the order total; anything less is a partial
        refund.
        """
        if not self.can_be_refunded():
            raise IllegalOrderState(
                self.id,
                self.status,
                "refund",
                reason=(
                    f"Cannot refund an order in {self.status} state with payment "
                    f"{self.payment_status}; it must be shipped or delivered and paid"
                ),
            )

        total = to_money(self.total_amount)
        refund_amount = total if amount is None else to_money(amount)
        if refund_amount <= 0:
            raise InvalidQuantity(amount, reason="Refund amount must be positive")
        if refund_amount > total:
            raise InvalidQuantity(amount, reason=f"Refund amount cannot exceed the order total of {total}")

        payment_status = PaymentStatus.PARTIALLY_REFUNDED if refund_amount < total else PaymentStatus.REFUNDED
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                refund_amount=float(refund_amount),
                reason=reason,
                payment_status=payment_status.value,
                refunded_at=clock.now(),
            )
        )

    # -------------------------------------------------------------------
    # Payment callbacks
    # -------------------------------------------------------------------
    def mark_paid(self, transaction_id):
        """Record a captured payment. The order status does not change.

        Payment callbacks are accepted in any state. A repeat of the callback
        that already paid the order (same ``transaction_id``) records nothing.
        """
        if self.current_payment_status == PaymentStatus.PAID and self.payment_transaction_id == transaction_id:
            return

        self.raise_(
            PaymentReceived(
                order_id=str(self.id),
                transaction_id=transaction_id,
                amount=self.total_amount,
                paid_at=clock.now(),
            )
        )

    def mark_payment_failed(self, reason=None):
        """Record a payment failure; the order becomes FAILED from any state.

        A repeat failure callback for an order that already failed records
        nothing.
        """
        if self.current_status == OrderStatus.FAILED:
            return

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                previous_status=self.status,
                reason=reason,
                failed_at=clock.now(),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    def _apply_pricing(self, event):
        self.pricing = OrderPricing(
            subtotal=event.subtotal,
            tax_rate=event.tax_rate or 0.0,
            tax_amount=event.tax_amount or 0.0,
            shipping_cost=event.shipping_cost or 0.0,
            discount_amount=event.discount_amount or 0.0,
            coupon_discount=event.coupon_discount or 0.0,
            total_amount=event.total_amount,
        )

    @apply
    def _on_order_created(self, event: OrderCreated):
        self.id = event.order_id
        self.order_number = event.order_number
        self.customer_id = event.customer_id
        self.cart_id = event.cart_id
        self.status = OrderStatus.PENDING.value
        self.payment_status = PaymentStatus.PENDING.value
        self.payment_method = event.payment_method
        self.shipping_method = event.shipping_method
        self.coupon_code = event.coupon_code
        self.created_at = event.created_at
        self.updated_at = event.created_at

        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderItem(**item_data) for item_data in items_data]
        self._apply_pricing(event)

    @apply
    def _on_order_repriced(self, event: OrderRepriced):
        self.coupon_code = event.coupon_code
        self._apply_pricing(event)
        self.updated_at = event.repriced_at

    @apply
    def _on_order_confirmed(self, event: OrderConfirmed):
        self.status = OrderStatus.CONFIRMED.value
        self.confirmed_at = event.confirmed_at
        self.updated_at = event.confirmed_at

    @apply
    def _on_order_processing(self, event: OrderProcessing):
        self.status = OrderStatus.PROCESSING.value
        self.updated_at = event.started_at

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        self.status = OrderStatus.SHIPPED.value
        self.carrier = event.carrier
        self.tracking_number = event.tracking_number
        self.shipped_at = event.shipped_at
        self.updated_at = event.shipped_at

    @apply
    def _on_order_out_for_delivery(self, event: OrderOutForDelivery):
        self.status = OrderStatus.OUT_FOR_DELIVERY.value
        self.updated_at = event.dispatched_at

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = event.delivered_at
        self.updated_at = event.delivered_at

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self.status = OrderStatus.CANCELLED.value
        self.payment_status = event.payment_status
        self.cancellation_reason = event.reason
        self.cancelled_at = event.cancelled_at
        self.updated_at = event.cancelled_at

    @apply
    def _on_order_refunded(self, event: OrderRefunded):
        self.status = OrderStatus.REFUNDED.value
        self.payment_status = event.payment_status
        self.refund_amount = event.refund_amount
        self.refund_reason = event.reason
        self.refunded_at = event.refunded_at
        self.updated_at = event.refunded_at

    @apply
    def _on_payment_received(self, event: PaymentReceived):
        self.payment_status = PaymentStatus.PAID.value
        self.payment_transaction_id = event.transaction_id
        self.paid_at = event.paid_at
        self.updated_at = event.paid_at

    @apply
    def _on_payment_failed(self, event: PaymentFailed):
        self.status = OrderStatus.FAILED.value
        self.payment_status = PaymentStatus.FAILED.value
        self.failure_reason = event.reason
        self.updated_at = event.failed_at
