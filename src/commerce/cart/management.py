"""Cart management — creation, merging and lookup.

Handles cart creation for signed-in users and guest sessions, and the merge
of a guest cart into a user's cart at sign-in.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce import settings
from commerce.cart.cart import CartOwner, OwnerKind, ShoppingCart
from commerce.domain import commerce
from commerce.errors import ResourceNotFound
from commerce.pricing.coupons import get_coupon_resolver
from commerce.product.product import Product

logger = structlog.get_logger(__name__)


def load_cart(cart_id) -> ShoppingCart:
    try:
        return current_domain.repository_for(ShoppingCart).get(str(cart_id))
    except ObjectNotFoundError:
        raise ResourceNotFound("Cart", cart_id) from None


def get_cart(cart_id) -> ShoppingCart:
    return load_cart(cart_id)


def delete_cart(cart):
    """Remove a cart and its lines from storage."""
    repo = current_domain.repository_for(ShoppingCart)
    for item in list(cart.items):
        cart.remove_items(item)
    repo.add(cart)
    repo._dao.delete(cart)


@commerce.command(part_of="ShoppingCart")
class CreateCart:
    """Open a cart for a signed-in user (``User``) or a guest session (``Guest``)."""

    owner_kind = String(required=True, choices=OwnerKind)
    owner_reference = String(required=True, max_length=255)


@commerce.command(part_of="ShoppingCart")
class MergeCarts:
    """Merge a (guest) source cart into a target cart and delete the source."""

    source_cart_id = Identifier(required=True)
    target_cart_id = Identifier(required=True)


@commerce.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        owner = CartOwner(kind=command.owner_kind, reference=command.owner_reference)
        cart = ShoppingCart.create(owner)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(MergeCarts)
    def merge_carts(self, command):
        if str(command.source_cart_id) == str(command.target_cart_id):
            raise ValidationError({"source_cart_id": ["A cart cannot be merged into itself"]})

        repo = current_domain.repository_for(ShoppingCart)
        source = load_cart(command.source_cart_id)
        target = load_cart(command.target_cart_id)

        product_repo = current_domain.repository_for(Product)
        products = {}
        for item in source.items:
            try:
                products[str(item.product_id)] = product_repo.get(str(item.product_id))
            except ObjectNotFoundError:
                logger.warning(
                    "Skipping unknown product during cart merge",
                    cart_id=str(source.id),
                    product_id=str(item.product_id),
                )

        merged = target.merge_from(source, products, settings.cart_max_items())
        target.refresh_coupon(get_coupon_resolver())
        repo.add(target)
        delete_cart(source)

        logger.info(
            "Carts merged",
            source_cart_id=str(source.id),
            target_cart_id=str(target.id),
            items_merged=merged,
        )
        return merged
