"""Order repricing — command and handler."""

from protean import handle
from protean.fields import Float, Identifier, String

from commerce.domain import commerce
from commerce.order.lifecycle import transition
from commerce.order.order import Order
from commerce.pricing.coupons import get_coupon_resolver
from commerce.pricing.pricing import subtotal


@commerce.command(part_of="Order")
class RepriceOrder:
    """Change the tax rate, shipping cost, discount or coupon of a pending order."""

    order_id = Identifier(required=True)
    tax_rate = Float(min_value=0.0)
    shipping_cost = Float(min_value=0.0)
    discount_amount = Float(min_value=0.0)
    coupon_code = String(max_length=100)


@commerce.command_handler(part_of=Order)
class RepriceOrderHandler:
    @handle(RepriceOrder)
    def reprice_order(self, command):
        def _reprice(order):
            order.assert_repriceable()
            coupon_code = coupon_discount = None
            if command.coupon_code:
                coupon_code = command.coupon_code.strip().upper()
                coupon_discount = get_coupon_resolver().resolve_discount(coupon_code, subtotal(order.items))

            order.reprice(
                tax_rate=command.tax_rate,
                shipping_cost=command.shipping_cost,
                discount_amount=command.discount_amount,
                coupon_code=coupon_code,
                coupon_discount=coupon_discount,
            )

        transition(command.order_id, _reprice, "reprice")
