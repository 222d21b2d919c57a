"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="ShoppingCart")
class CartCreated:
    """A new, empty cart was opened for a customer or a guest session."""

    __version__ = 1

    cart_id = Identifier(required=True)
    owner_kind = String(required=True)
    owner_reference = String(required=True)
    created_at = DateTime(required=True)


@commerce.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    unit_price = Float(required=True)


@commerce.event(part_of="ShoppingCart")
class CartItemUpdated:
    """The quantity of a cart line was replaced."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.event(part_of="ShoppingCart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    removed_item_count = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon was accepted and its discount recorded on the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount_amount = Float(required=True)


@commerce.event(part_of="ShoppingCart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)
    reason = String()


@commerce.event(part_of="ShoppingCart")
class CartsMerged:
    """Items from another cart (typically a guest cart) were merged in."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier(required=True)
    items_merged_count = Integer(required=True)
    items_skipped_count = Integer(required=True)


@commerce.event(part_of="ShoppingCart")
class CartConverted:
    """The cart's contents became an order at checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    converted_at = DateTime(required=True)


@commerce.event(part_of="ShoppingCart")
class CartAbandoned:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_count = Integer(required=True)
    last_activity_at = DateTime()
    abandoned_at = DateTime(required=True)


@commerce.event(part_of="ShoppingCart")
class CartExpired:
    __version__ = 1

    cart_id = Identifier(required=True)
    previous_status = String(required=True)
    expired_at = DateTime(required=True)
