"""Order detail — full order view for detail pages, held in the domain cache.

Entries are built on first read from the event-sourced Order and evicted by
the projector below whenever the order raises an event. Projectors run after
the Unit of Work commits, so an entry is never dropped for a change that was
rolled back.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String, Text
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
from commerce.order.order import Order


@commerce.projection(cache="default")
class OrderDetail:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(required=True)
    payment_status = String(required=True)
    items = Text()  # JSON: list of item dicts
    subtotal = Float()
    tax_amount = Float()
    shipping_cost = Float()
    discount_amount = Float()
    coupon_discount = Float()
    total_amount = Float()
    refund_amount = Float()
    coupon_code = String()
    carrier = String()
    tracking_number = String()
    updated_at = DateTime()

    @property
    def line_items(self):
        return json.loads(self.items) if self.items else []


def _key(order_id):
    return f"order_detail:::{order_id}"


def detail_from_order(order) -> OrderDetail:
    pricing = order.pricing
    return OrderDetail(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_status=order.payment_status,
        items=json.dumps(
            [
                {
                    "product_id": str(item.product_id),
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "discount": item.discount or 0.0,
                }
                for item in order.items
            ]
        ),
        subtotal=pricing.subtotal,
        tax_amount=pricing.tax_amount,
        shipping_cost=pricing.shipping_cost,
        discount_amount=pricing.discount_amount,
        coupon_discount=pricing.coupon_discount,
        total_amount=pricing.total_amount,
        refund_amount=order.refund_amount,
        coupon_code=order.coupon_code,
        carrier=order.carrier,
        tracking_number=order.tracking_number,
        updated_at=order.updated_at,
    )


def cached_detail(order_id):
    return current_domain.cache_for(OrderDetail).get(_key(order_id))


def store_detail(detail):
    current_domain.cache_for(OrderDetail).add(detail)


def evict_detail(order_id):
    cache = current_domain.cache_for(OrderDetail)
    if cache.get(_key(order_id)) is not None:
        cache.remove_by_key(_key(order_id))


@commerce.projector(projector_for=OrderDetail, aggregates=[Order])
class OrderDetailProjector:
    @on(OrderCreated)
    def on_order_created(self, event):
        evict_detail(event.order_id)

    @on(OrderRepriced)
    def on_order_repriced(self, event):
        evict_detail(event.order_id)

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        evict_detail(event.order_id)

    @on(OrderProcessing)
    def on_order_processing(self, event):
        evict_detail(event.order_id)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        evict_detail(event.order_id)

    @on(OrderOutForDelivery)
    def on_order_out_for_delivery(self, event):
        evict_detail(event.order_id)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        evict_detail(event.order_id)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        evict_detail(event.order_id)

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        evict_detail(event.order_id)

    @on(PaymentReceived)
    def on_payment_received(self, event):
        evict_detail(event.order_id)

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        evict_detail(event.order_id)
