"""Shared BDD fixtures and step definitions for the commerce domain."""

import json
from datetime import UTC, datetime

import pytest
from commerce.cart.cart import CartOwner, ShoppingCart
from commerce.cart.events import CartAbandoned, CartConverted, CartCouponApplied, CartItemAdded, CartsMerged
from commerce.errors import IllegalOrderState
from commerce.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderCreated,
    OrderDelivered,
    OrderOutForDelivery,
    OrderProcessing,
    OrderRefunded,
    OrderShipped,
    PaymentFailed,
    PaymentReceived,
)
from commerce.order.lifecycle import ConfirmOrder, DeliverOrder, MarkOutForDelivery, ShipOrder
from commerce.order.order import Order
from commerce.product.events import LowStockDetected, StockDeducted, StockReleased, StockReserved
from commerce.product.product import Product
from protean.exceptions import ValidationError
from protean.testing import given as given_
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderCreated": OrderCreated,
    "OrderConfirmed": OrderConfirmed,
    "OrderProcessing": OrderProcessing,
    "OrderShipped": OrderShipped,
    "OrderOutForDelivery": OrderOutForDelivery,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
    "OrderRefunded": OrderRefunded,
    "PaymentReceived": PaymentReceived,
    "PaymentFailed": PaymentFailed,
}

_CART_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartCouponApplied": CartCouponApplied,
    "CartsMerged": CartsMerged,
    "CartConverted": CartConverted,
    "CartAbandoned": CartAbandoned,
}

_PRODUCT_EVENT_CLASSES = {
    "StockReserved": StockReserved,
    "StockReleased": StockReleased,
    "StockDeducted": StockDeducted,
    "LowStockDetected": LowStockDetected,
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_id():
    return "ord-001"


@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def products():
    """Products by SKU, for scenarios that work with several."""
    return {}


# ---------------------------------------------------------------------------
# Event fixtures (past tense, what happened)
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_created(order_id, customer_id):
    return OrderCreated(
        order_id=order_id,
        order_number="ORD-20260101-000001",
        customer_id=customer_id,
        cart_id="cart-001",
        items=json.dumps(
            [
                {
                    "id": "item-1",
                    "product_id": "prod-001",
                    "product_name": "Widget",
                    "sku": "SKU-001",
                    "quantity": 2,
                    "unit_price": 100.0,
                    "discount": 0.0,
                }
            ]
        ),
        payment_method="Credit_Card",
        shipping_method="Standard",
        subtotal=200.0,
        tax_rate=10.0,
        tax_amount=20.0,
        shipping_cost=5.99,
        discount_amount=0.0,
        coupon_discount=0.0,
        total_amount=225.99,
        created_at=datetime.now(UTC),
    )


@pytest.fixture()
def order_confirmed(order_id):
    return OrderConfirmed(order_id=order_id, confirmed_at=datetime.now(UTC))


@pytest.fixture()
def payment_received(order_id):
    return PaymentReceived(order_id=order_id, transaction_id="txn-001", amount=225.99, paid_at=datetime.now(UTC))


@pytest.fixture()
def order_processing(order_id):
    return OrderProcessing(order_id=order_id, started_at=datetime.now(UTC))


@pytest.fixture()
def order_shipped(order_id):
    return OrderShipped(
        order_id=order_id,
        carrier="UPS",
        tracking_number="1Z999",
        shipped_at=datetime.now(UTC),
    )


@pytest.fixture()
def order_delivered(order_id):
    return OrderDelivered(order_id=order_id, delivered_at=datetime.now(UTC))


@pytest.fixture()
def order_cancelled(order_id):
    return OrderCancelled(
        order_id=order_id,
        previous_status="Pending",
        reason="Changed my mind",
        payment_status="Cancelled",
        cancelled_at=datetime.now(UTC),
    )


# ---------------------------------------------------------------------------
# Command fixtures (imperative, what to do)
# ---------------------------------------------------------------------------
@pytest.fixture()
def confirm_order(order_id):
    return ConfirmOrder(order_id=order_id)


@pytest.fixture()
def ship_order(order_id):
    return ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z999")


@pytest.fixture()
def mark_out_for_delivery(order_id):
    return MarkOutForDelivery(order_id=order_id)


@pytest.fixture()
def deliver_order(order_id):
    return DeliverOrder(order_id=order_id)


# ---------------------------------------------------------------------------
# Given steps: Order (event sourcing via protean.testing)
# ---------------------------------------------------------------------------
@given("an order was placed", target_fixture="order")
def _(order_created):
    return given_(Order, order_created)


@given("the order was confirmed", target_fixture="order")
def _(order, order_confirmed):
    return order.after(order_confirmed)


@given("the order was paid", target_fixture="order")
def _(order, payment_received):
    return order.after(payment_received)


@given("the order is processing", target_fixture="order")
def _(order, order_processing):
    return order.after(order_processing)


@given("the order was shipped", target_fixture="order")
def _(order, order_shipped):
    return order.after(order_shipped)


@given("the order was delivered", target_fixture="order")
def _(order, order_delivered):
    return order.after(order_delivered)


@given("the order was cancelled", target_fixture="order")
def _(order, order_cancelled):
    return order.after(order_cancelled)


# ---------------------------------------------------------------------------
# Given steps: Product and Shopping Cart (standard DDD)
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{sku}" with {stock:d} units in stock'), target_fixture="product")
def product_in_stock(products, sku, stock):
    product = Product.register(sku=sku, name=f"Product {sku}", price=10.0, stock_quantity=stock)
    product._events.clear()
    products[sku] = product
    return product


@given("an active cart", target_fixture="cart")
def active_cart(customer_id):
    cart = ShoppingCart.create(CartOwner.for_user(customer_id))
    cart._events.clear()
    return cart


@given("a guest cart", target_fixture="guest_cart")
def guest_cart():
    cart = ShoppingCart.create(CartOwner.for_guest("sess-001"))
    cart._events.clear()
    return cart


# ---------------------------------------------------------------------------
# Then steps: Order (shared, plain assertions)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(order, status):
    assert order.payment_status == status


@then("the order action is rejected as an illegal transition")
def _(order):
    assert order.rejected
    assert isinstance(order.rejection, IllegalOrderState)


@then(parsers.cfparse("an {event_type} order event is raised"))
def _(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert event_cls in order.events


@then(parsers.cfparse("a {event_type} order event is raised"))
def _(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert event_cls in order.events


# ---------------------------------------------------------------------------
# Then steps: Product and Cart
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the cart status is "{status}"'))
def cart_status_is(cart, status):
    assert cart.status == status


@then("the action fails with a validation error")
def action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"


@then(parsers.cfparse("a {event_type} stock event is raised"))
def stock_event_raised(product, event_type):
    event_cls = _PRODUCT_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in product._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in product._events]}"
