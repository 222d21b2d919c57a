"""Checkout — converts an active cart into a PENDING order.

The whole conversion runs as one command inside one Unit of Work: stock for
every line is reserved and then deducted, the order is created and the cart
is marked converted. If any line cannot be supplied, or a concurrent request
changed one of the products first, nothing is committed. Version conflicts
are retried from scratch against fresh stock counters.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce import settings
from commerce.cart.cart import CartStatus, ShoppingCart
from commerce.cart.management import load_cart
from commerce.domain import commerce
from commerce.errors import CartNotActive, EmptyCartCheckout, InsufficientStock
from commerce.order.numbering import generate_order_number
from commerce.order.order import Order, PaymentMethod
from commerce.pricing.coupons import get_coupon_resolver
from commerce.pricing.pricing import ShippingMethod, shipping_cost
from commerce.product.ledger import load_sellable_product
from commerce.product.product import Product
from commerce.utils.concurrency import process_with_retry

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class CheckoutCart:
    cart_id = Identifier(required=True)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CREDIT_CARD.value)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    tax_rate = Float(min_value=0.0)  # Optional: defaults to the configured rate


@commerce.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(CheckoutCart)
    def checkout_cart(self, command):
        cart = load_cart(command.cart_id)

        # The cart may have been converted or swept since it was last read
        if CartStatus(cart.status) != CartStatus.ACTIVE:
            raise CartNotActive(cart.id, cart.status)
        if cart.is_empty:
            raise EmptyCartCheckout(cart.id)
        if cart.owner.is_guest:
            raise ValidationError({"customer": ["A signed-in customer is required to check out"]})

        lines = [(item, load_sellable_product(item.product_id)) for item in cart.items]

        # Check every line before touching any counter
        for item, product in lines:
            if not product.can_supply(item.quantity):
                raise InsufficientStock(product.id, requested=item.quantity, available=product.available_quantity)

        product_repo = current_domain.repository_for(Product)
        for item, product in lines:
            product.reserve(item.quantity)
            product.deduct(item.quantity)
            product_repo.add(product)

        coupon_discount = 0
        if cart.coupon_code:
            coupon_discount = get_coupon_resolver().resolve_discount(cart.coupon_code, cart.subtotal)

        tax_rate = command.tax_rate if command.tax_rate is not None else settings.order_default_tax_rate()
        order = Order.create_from_cart(
            order_number=generate_order_number(),
            customer_id=cart.owner.reference,
            cart_id=str(cart.id),
            items_data=[
                {
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "sku": product.sku,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                }
                for item, product in lines
            ],
            payment_method=command.payment_method,
            shipping_method=command.shipping_method,
            shipping_cost=shipping_cost(command.shipping_method),
            tax_rate=tax_rate,
            coupon_code=cart.coupon_code,
            coupon_discount=coupon_discount,
        )
        current_domain.repository_for(Order).add(order)

        cart.mark_converted(order.id)
        current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Order created from cart",
            order_id=str(order.id),
            order_number=order.order_number,
            cart_id=str(cart.id),
            customer_id=str(order.customer_id),
            item_count=len(lines),
            total_amount=order.total_amount,
        )
        return str(order.id)


def checkout(cart_id, payment_method=None, shipping_method=None, tax_rate=None):
    """Check out a cart, retrying when another request changed the same stock first."""
    command = CheckoutCart(
        cart_id=str(cart_id),
        payment_method=payment_method or PaymentMethod.CREDIT_CARD.value,
        shipping_method=shipping_method or ShippingMethod.STANDARD.value,
        tax_rate=tax_rate,
    )
    return process_with_retry(command)
