"""Order summary — lookup by order number and per-customer listings."""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
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
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.utils.db import fetch_all


@commerce.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(required=True)
    payment_status = String(required=True)
    item_count = Integer(default=0)
    total_amount = Float()
    created_at = DateTime()
    updated_at = DateTime()


def find_by_order_number(order_number):
    records = (
        current_domain.repository_for(OrderSummary)._dao.query.filter(order_number=order_number).all().items
    )
    return records[0] if records else None


def orders_for_customer(customer_id, status=None):
    query = current_domain.repository_for(OrderSummary)._dao.query.filter(customer_id=str(customer_id))
    if status is not None:
        query = query.filter(status=status)
    return fetch_all(query, order_field="order_id")


def all_order_summaries():
    return fetch_all(current_domain.repository_for(OrderSummary)._dao.query, order_field="order_id")


@commerce.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                item_count=sum(item["quantity"] for item in items),
                total_amount=event.total_amount,
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    def _update(self, order_id, updated_at=None, **changes):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(order_id)
        for field, value in changes.items():
            setattr(summary, field, value)
        if updated_at:
            summary.updated_at = updated_at
        repo.add(summary)

    @on(OrderRepriced)
    def on_order_repriced(self, event):
        self._update(event.order_id, event.repriced_at, total_amount=event.total_amount)

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._update(event.order_id, event.confirmed_at, status=OrderStatus.CONFIRMED.value)

    @on(OrderProcessing)
    def on_order_processing(self, event):
        self._update(event.order_id, event.started_at, status=OrderStatus.PROCESSING.value)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update(event.order_id, event.shipped_at, status=OrderStatus.SHIPPED.value)

    @on(OrderOutForDelivery)
    def on_order_out_for_delivery(self, event):
        self._update(event.order_id, event.dispatched_at, status=OrderStatus.OUT_FOR_DELIVERY.value)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, event.delivered_at, status=OrderStatus.DELIVERED.value)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update(
            event.order_id,
            event.cancelled_at,
            status=OrderStatus.CANCELLED.value,
            payment_status=event.payment_status,
        )

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        self._update(
            event.order_id,
            event.refunded_at,
            status=OrderStatus.REFUNDED.value,
            payment_status=event.payment_status,
        )

    @on(PaymentReceived)
    def on_payment_received(self, event):
        self._update(event.order_id, event.paid_at, payment_status=PaymentStatus.PAID.value)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        self._update(
            event.order_id,
            event.failed_at,
            status=OrderStatus.FAILED.value,
            payment_status=PaymentStatus.FAILED.value,
        )
