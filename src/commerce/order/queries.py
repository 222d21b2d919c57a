"""Order reads.

``get_order`` serves the ``OrderDetail`` view from the domain cache and
builds it from the event-sourced Order on a miss. Entries are evicted by the
``OrderDetailProjector`` once an order event has been committed.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import ResourceNotFound
from commerce.order.order import Order, OrderStatus, PaymentStatus
from commerce.pricing.pricing import to_money
from commerce.projections.order_detail import OrderDetail, cached_detail, detail_from_order, store_detail
from commerce.projections.order_summary import all_order_summaries, find_by_order_number, orders_for_customer


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise ResourceNotFound("Order", order_id) from None


def get_order(order_id) -> OrderDetail:
    detail = cached_detail(order_id)
    if detail is None:
        detail = detail_from_order(load_order(order_id))
        store_detail(detail)
    return detail


def get_order_by_number(order_number) -> OrderDetail:
    summary = find_by_order_number(order_number)
    if summary is None:
        raise ResourceNotFound("Order", order_number)
    return get_order(summary.order_id)


def list_customer_orders(customer_id, status=None):
    """Summaries of a customer's orders, optionally narrowed to one status."""
    return orders_for_customer(customer_id, status=status)


@dataclass(frozen=True)
class OrderStatistics:
    total_orders: int
    by_status: dict
    total_revenue: float


def order_statistics() -> OrderStatistics:
    """Order counts per status and the revenue collected from paid orders."""
    summaries = all_order_summaries()
    by_status = {status.value: 0 for status in OrderStatus}
    revenue = to_money(0)
    for summary in summaries:
        by_status[summary.status] = by_status.get(summary.status, 0) + 1
        if summary.payment_status == PaymentStatus.PAID.value:
            revenue += to_money(summary.total_amount)

    return OrderStatistics(total_orders=len(summaries), by_status=by_status, total_revenue=float(revenue))
