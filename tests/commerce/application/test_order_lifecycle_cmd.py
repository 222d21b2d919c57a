"""Application tests for order transitions, payment callbacks and repricing."""

import pytest
from commerce.cart.items import AddToCart
from commerce.cart.management import CreateCart
from commerce.domain import commerce
from commerce.errors import IllegalOrderState, InvalidCoupon
from commerce.order.cancellation import CancelOrder, RefundOrder, cancel_order
from commerce.order.checkout import checkout
from commerce.order.lifecycle import (
    ConfirmOrder,
    DeliverOrder,
    MarkOutForDelivery,
    ShipOrder,
    StartProcessing,
)
from commerce.order.modification import RepriceOrder
from commerce.order.order import OrderStatus, PaymentStatus
from commerce.order.payment import MarkOrderPaid, MarkPaymentFailed, fail_payment
from commerce.order.queries import (
    get_order,
    get_order_by_number,
    list_customer_orders,
    load_order,
    order_statistics,
)
from commerce.product.product import Product
from commerce.product.registration import RegisterProduct
from commerce.projections.order_detail import cached_detail
from protean import current_domain
from protean.exceptions import ExpectedVersionError


def _register_product(stock=10, price=100.0):
    return current_domain.process(
        RegisterProduct(sku="SKU-1", name="Widget", price=price, stock_quantity=stock),
        asynchronous=False,
    )


def _place_order(product_id, quantity=2, customer="cust-001"):
    cart_id = current_domain.process(
        CreateCart(owner_kind="User", owner_reference=customer),
        asynchronous=False,
    )
    current_domain.process(
        AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity),
        asynchronous=False,
    )
    return checkout(cart_id, tax_rate=10)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _advance(order_id, *commands):
    for command_cls in commands:
        _process(command_cls(order_id=order_id))


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock_quantity


class TestFulfillmentCommands:
    def test_full_lifecycle(self):
        order_id = _place_order(_register_product())
        _process(ConfirmOrder(order_id=order_id))
        _process(StartProcessing(order_id=order_id))
        _process(ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z999"))
        _process(MarkOutForDelivery(order_id=order_id))
        _process(DeliverOrder(order_id=order_id))

        order = load_order(order_id)
        assert order.status == OrderStatus.DELIVERED.value
        assert order.carrier == "UPS"
        assert order.tracking_number == "1Z999"

    def test_illegal_transition_is_rejected(self):
        order_id = _place_order(_register_product())
        with pytest.raises(IllegalOrderState):
            _process(ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z999"))
        assert load_order(order_id).status == OrderStatus.PENDING.value


class TestCancelOrderCommand:
    def test_cancel_restores_stock(self):
        product_id = _register_product(stock=10)
        order_id = _place_order(product_id, quantity=3)
        _advance(order_id, ConfirmOrder)
        assert _stock(product_id) == 7

        _process(CancelOrder(order_id=order_id, reason="Changed my mind"))

        order = load_order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert _stock(product_id) == 10

    def test_cannot_cancel_shipped_order(self):
        product_id = _register_product(stock=10)
        order_id = _place_order(product_id)
        _advance(order_id, ConfirmOrder, StartProcessing)
        _process(ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z"))

        with pytest.raises(IllegalOrderState):
            _process(CancelOrder(order_id=order_id, reason="Too late"))
        assert _stock(product_id) == 8


class TestRefundOrderCommand:
    def test_refund_delivered_paid_order(self):
        order_id = _place_order(_register_product())
        _process(MarkOrderPaid(order_id=order_id, transaction_id="txn-1"))
        _advance(order_id, ConfirmOrder, StartProcessing)
        _process(ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z"))
        _advance(order_id, DeliverOrder)

        _process(RefundOrder(order_id=order_id, reason="Damaged"))

        order = load_order(order_id)
        assert order.status == OrderStatus.REFUNDED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert order.refund_amount == 225.99

    def test_refund_unpaid_order_rejected(self):
        order_id = _place_order(_register_product())
        _advance(order_id, ConfirmOrder, StartProcessing)
        _process(ShipOrder(order_id=order_id, carrier="UPS", tracking_number="1Z"))

        with pytest.raises(IllegalOrderState):
            _process(RefundOrder(order_id=order_id))


class TestPaymentCommands:
    def test_mark_paid(self):
        order_id = _place_order(_register_product())
        _process(MarkOrderPaid(order_id=order_id, transaction_id="txn-1"))

        order = load_order(order_id)
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.payment_transaction_id == "txn-1"

    def test_repeated_payment_callback_is_accepted_once(self):
        order_id = _place_order(_register_product())
        _process(MarkOrderPaid(order_id=order_id, transaction_id="txn-1"))
        _process(MarkOrderPaid(order_id=order_id, transaction_id="txn-1"))

        stream = current_domain.event_store.store.read(f"commerce::order-{order_id}")
        payments = [m for m in stream if m.metadata.headers.type == "Commerce.PaymentReceived.v1"]
        assert len(payments) == 1
        assert load_order(order_id).payment_status == PaymentStatus.PAID.value

    def test_payment_for_cancelled_order_is_recorded(self):
        order_id = _place_order(_register_product())
        _process(CancelOrder(order_id=order_id, reason="Changed mind"))
        _process(MarkOrderPaid(order_id=order_id, transaction_id="txn-late"))

        order = load_order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_payment_failure_restores_stock(self):
        product_id = _register_product(stock=10)
        order_id = _place_order(product_id, quantity=4)
        assert _stock(product_id) == 6

        _process(MarkPaymentFailed(order_id=order_id, reason="Card declined"))

        order = load_order(order_id)
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_reason == "Card declined"
        assert _stock(product_id) == 10


class TestStockRestoringCommandsRetry:
    @staticmethod
    def _lose_first_race(monkeypatch):
        real_process = commerce.process
        attempts = []

        def _process(command, asynchronous=True):
            attempts.append(command.__class__.__name__)
            if len(attempts) == 1:
                raise ExpectedVersionError("Wrong expected version")
            return real_process(command, asynchronous=asynchronous)

        monkeypatch.setattr(commerce, "process", _process)
        return attempts

    def test_cancel_is_retried_after_a_version_conflict(self, monkeypatch):
        product_id = _register_product(stock=10)
        order_id = _place_order(product_id, quantity=3)
        attempts = self._lose_first_race(monkeypatch)

        cancel_order(order_id, reason="Changed my mind")

        assert attempts == ["CancelOrder", "CancelOrder"]
        assert load_order(order_id).status == OrderStatus.CANCELLED.value
        assert _stock(product_id) == 10

    def test_payment_failure_is_retried_after_a_version_conflict(self, monkeypatch):
        product_id = _register_product(stock=10)
        order_id = _place_order(product_id, quantity=4)
        attempts = self._lose_first_race(monkeypatch)

        fail_payment(order_id, reason="Card declined")

        assert attempts == ["MarkPaymentFailed", "MarkPaymentFailed"]
        assert load_order(order_id).status == OrderStatus.FAILED.value
        assert _stock(product_id) == 10


class TestRepriceOrderCommand:
    def test_reprice_shipping(self):
        order_id = _place_order(_register_product())
        _process(RepriceOrder(order_id=order_id, shipping_cost=0.0))
        assert load_order(order_id).total_amount == 220.0

    def test_reprice_with_coupon(self):
        order_id = _place_order(_register_product())
        _process(RepriceOrder(order_id=order_id, coupon_code="welcome5"))

        order = load_order(order_id)
        assert order.coupon_code == "WELCOME5"
        assert order.pricing.coupon_discount == 5.0
        assert order.total_amount == 220.99

    def test_reprice_invalid_coupon(self):
        order_id = _place_order(_register_product())
        with pytest.raises(InvalidCoupon):
            _process(RepriceOrder(order_id=order_id, coupon_code="BOGUS"))

    def test_reprice_confirmed_order_rejected(self):
        order_id = _place_order(_register_product())
        _advance(order_id, ConfirmOrder)
        with pytest.raises(IllegalOrderState):
            _process(RepriceOrder(order_id=order_id, tax_rate=0.0))


class TestOrderQueries:
    def test_first_read_fills_the_domain_cache(self):
        order_id = _place_order(_register_product())
        assert cached_detail(order_id) is None

        detail = get_order(order_id)

        assert detail.status == OrderStatus.PENDING.value
        assert detail.total_amount == 225.99
        assert cached_detail(order_id).order_number == detail.order_number

    def test_committed_transition_evicts_the_cached_view(self):
        order_id = _place_order(_register_product())
        assert get_order(order_id).status == OrderStatus.PENDING.value

        _process(ConfirmOrder(order_id=order_id))

        assert cached_detail(order_id) is None
        assert get_order(order_id).status == OrderStatus.CONFIRMED.value

    def test_rejected_transition_keeps_the_cached_view(self):
        order_id = _place_order(_register_product())
        get_order(order_id)

        with pytest.raises(IllegalOrderState):
            _process(ShipOrder(order_id=order_id))

        assert cached_detail(order_id).status == OrderStatus.PENDING.value

    def test_lookup_by_order_number(self):
        order_id = _place_order(_register_product())
        order = load_order(order_id)
        assert get_order_by_number(order.order_number).order_id == order_id

    def test_list_customer_orders(self):
        product_id = _register_product(stock=20)
        _place_order(product_id, quantity=1, customer="cust-001")
        _place_order(product_id, quantity=1, customer="cust-001")
        _place_order(product_id, quantity=1, customer="cust-002")

        assert len(list_customer_orders("cust-001")) == 2

    def test_list_customer_orders_by_status(self):
        product_id = _register_product(stock=20)
        pending = _place_order(product_id, quantity=1)
        cancelled = _place_order(product_id, quantity=1)
        _place_order(product_id, quantity=1, customer="cust-002")
        _process(CancelOrder(order_id=cancelled))

        assert [s.order_id for s in list_customer_orders("cust-001", status="Pending")] == [pending]
        assert [s.order_id for s in list_customer_orders("cust-001", status="Cancelled")] == [cancelled]
        assert list_customer_orders("cust-002", status="Cancelled") == []


class TestOrderStatistics:
    def test_empty_store(self):
        stats = order_statistics()
        assert stats.total_orders == 0
        assert stats.total_revenue == 0.0
        assert set(stats.by_status) == {status.value for status in OrderStatus}
        assert all(count == 0 for count in stats.by_status.values())

    def test_counts_per_status_and_revenue_from_paid_orders(self):
        product_id = _register_product(stock=20)
        paid = _place_order(product_id, quantity=1)
        _process(MarkOrderPaid(order_id=paid, transaction_id="txn-1"))
        shipped = _place_order(product_id, quantity=2, customer="cust-002")
        _process(MarkOrderPaid(order_id=shipped, transaction_id="txn-2"))
        _advance(shipped, ConfirmOrder, StartProcessing)
        _process(ShipOrder(order_id=shipped, carrier="UPS", tracking_number="1Z"))
        _place_order(product_id, quantity=1)
        cancelled = _place_order(product_id, quantity=1)
        _process(CancelOrder(order_id=cancelled))

        stats = order_statistics()

        assert stats.total_orders == 4
        assert stats.by_status["Pending"] == 2
        assert stats.by_status["Shipped"] == 1
        assert stats.by_status["Cancelled"] == 1
        assert stats.by_status["Delivered"] == 0
        assert stats.total_revenue == 341.98
