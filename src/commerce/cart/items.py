"""Cart item management — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from commerce import settings
from commerce.cart.cart import ShoppingCart
from commerce.cart.management import load_cart
from commerce.domain import commerce
from commerce.pricing.coupons import get_coupon_resolver
from commerce.product.ledger import load_sellable_product


@commerce.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="ShoppingCart")
class UpdateCartItem:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.command(part_of="ShoppingCart")
class ClearCart:
    cart_id = Identifier(required=True)


@commerce.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    def _save(self, cart):
        cart.refresh_coupon(get_coupon_resolver())
        current_domain.repository_for(ShoppingCart).add(cart)

    @handle(AddToCart)
    def add_to_cart(self, command):
        cart = load_cart(command.cart_id)
        product = load_sellable_product(command.product_id)
        cart.add_item(product, command.quantity, max_items=settings.cart_max_items())
        self._save(cart)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        cart = load_cart(command.cart_id)
        if command.quantity == 0:
            cart.remove_item(command.product_id)
        else:
            product = load_sellable_product(command.product_id)
            cart.update_quantity(product, command.quantity)
        self._save(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.cart_id)
        cart.remove_item(command.product_id)
        self._save(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.cart_id)
        cart.clear()
        cart.remove_coupon(reason="Cart cleared")
        current_domain.repository_for(ShoppingCart).add(cart)
