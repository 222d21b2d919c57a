"""Cart coupon management — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.cart.cart import ShoppingCart
from commerce.cart.management import load_cart
from commerce.domain import commerce
from commerce.pricing.coupons import get_coupon_resolver


@commerce.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Apply a coupon code to a shopping cart."""

    cart_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)


@commerce.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    cart_id = Identifier(required=True)


@commerce.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        cart = load_cart(command.cart_id)
        cart.apply_coupon(command.coupon_code, get_coupon_resolver())
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        cart = load_cart(command.cart_id)
        cart.remove_coupon()
        current_domain.repository_for(ShoppingCart).add(cart)
