"""Shopping Cart aggregate (CQRS) — the basket a customer or guest fills before checkout.

The cart never reserves stock. Adding or updating a line only checks, as an
advisory, that the product could currently supply the requested quantity;
the authoritative reservation happens at checkout, which re-reads stock.

Each line captures the product's unit price at the moment it was added, so
later catalogue price changes do not move the cart's totals.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from commerce.cart.events import (
    CartAbandoned,
    CartCleared,
    CartConverted,
    CartCouponApplied,
    CartCouponRemoved,
    CartCreated,
    CartExpired,
    CartItemAdded,
    CartItemRemoved,
    CartItemUpdated,
    CartsMerged,
)
from commerce.domain import commerce
from commerce.errors import CartFull, CartNotActive, InsufficientStock, InvalidCoupon, InvalidQuantity
from commerce.pricing import pricing
from commerce.utils import clock


class CartStatus(Enum):
    ACTIVE = "Active"
    ABANDONED = "Abandoned"
    CONVERTED = "Converted"
    EXPIRED = "Expired"


class OwnerKind(Enum):
    USER = "User"
    GUEST = "Guest"


@commerce.value_object(part_of="ShoppingCart")
class CartOwner:
    """Who the cart belongs to: a signed-in user or an anonymous guest session."""

    kind = String(required=True, choices=OwnerKind)
    reference = String(required=True, max_length=255)

    @classmethod
    def for_user(cls, user_id):
        return cls(kind=OwnerKind.USER.value, reference=str(user_id))

    @classmethod
    def for_guest(cls, session_token):
        return cls(kind=OwnerKind.GUEST.value, reference=str(session_token))

    @property
    def is_guest(self) -> bool:
        return OwnerKind(self.kind) == OwnerKind.GUEST


@commerce.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()

    @property
    def line_total(self):
        return pricing.line_total(self.unit_price, self.quantity)


@commerce.aggregate
class ShoppingCart:
    owner = ValueObject(CartOwner, required=True)
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    coupon_code = String(max_length=100)
    discount_amount = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def a_product_appears_at_most_once(self):
        product_ids = [str(item.product_id) for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner: CartOwner):
        now = clock.now()
        cart = cls(
            owner=owner,
            status=CartStatus.ACTIVE.value,
            discount_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                owner_kind=owner.kind,
                owner_reference=owner.reference,
                created_at=now,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return CartStatus(self.status) == CartStatus.ACTIVE

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self):
        return pricing.subtotal(self.items)

    @property
    def total(self):
        return pricing.total(self.subtotal, 0, 0, 0, self.discount_amount or 0)

    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> int:
        item = self.item_for(product_id)
        return item.quantity if item else 0

    def _assert_active(self):
        if not self.is_active:
            raise CartNotActive(self.id, self.status)

    @staticmethod
    def _assert_can_supply(product, quantity):
        if not product.can_supply(quantity):
            raise InsufficientStock(product.id, requested=quantity, available=product.available_quantity)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity, max_items):
        """Add ``quantity`` of ``product``, merging into an existing line.

        ``product`` is the live Product; it is only read, never mutated.
        """
        self._assert_active()
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(quantity)

        existing = self.item_for(product.id)
        if existing is None and len(self.items) >= max_items:
            raise CartFull(max_items)

        new_quantity = (existing.quantity if existing else 0) + quantity
        self._assert_can_supply(product, new_quantity)

        now = clock.now()
        if existing:
            existing.quantity = new_quantity
            unit_price = existing.unit_price
        else:
            unit_price = product.price
            self.add_items(
                CartItem(
                    product_id=str(product.id),
                    quantity=new_quantity,
                    unit_price=unit_price,
                    added_at=now,
                )
            )

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product.id),
                quantity=quantity,
                line_quantity=new_quantity,
                unit_price=unit_price,
            )
        )

    def update_quantity(self, product, quantity):
        """Replace a line's quantity. Zero removes the line."""
        self._assert_active()
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidQuantity(quantity, reason="Quantity must be zero or a positive integer")

        item = self.item_for(product.id)
        if item is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        if quantity == 0:
            self.remove_item(product.id)
            return

        self._assert_can_supply(product, quantity)

        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = clock.now()
        self.raise_(
            CartItemUpdated(
                cart_id=str(self.id),
                product_id=str(product.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        self._assert_active()
        item = self.item_for(product_id)
        if item is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})

        self.remove_items(item)
        self.updated_at = clock.now()
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self):
        self._assert_active()
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)

        self.updated_at = clock.now()
        self.raise_(CartCleared(cart_id=str(self.id), removed_item_count=removed))

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_code, resolver):
        """Resolve ``coupon_code`` against the current subtotal and record the discount."""
        self._assert_active()
        code = (coupon_code or "").strip().upper()
        if not code:
            raise InvalidCoupon(coupon_code, reason="Coupon code is required")

        discount = resolver.resolve_discount(code, self.subtotal)
        self.coupon_code = code
        self.discount_amount = float(discount)
        self.updated_at = clock.now()
        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_code=code,
                discount_amount=self.discount_amount,
            )
        )

    def remove_coupon(self, reason=None):
        self._assert_active()
        if not self.coupon_code:
            return

        code = self.coupon_code
        self.coupon_code = None
        self.discount_amount = 0.0
        self.updated_at = clock.now()
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code, reason=reason))

    def refresh_coupon(self, resolver):
        """Re-resolve the applied coupon after the items changed.

        A coupon the new subtotal no longer qualifies for is dropped.
        """
        if not self.coupon_code or not self.is_active:
            return

        try:
            discount = resolver.resolve_discount(self.coupon_code, self.subtotal)
        except InvalidCoupon as exc:
            self.remove_coupon(reason=exc.reason)
            return

        self.discount_amount = float(discount)

    # -------------------------------------------------------------------
    # Merging
    # -------------------------------------------------------------------
    def merge_from(self, source, products, max_items):
        """Best-effort merge of ``source``'s lines into this cart.

        ``products`` maps product id to the live Product. For each source
        line, only as much as current stock allows on top of what this cart
        already holds is moved across. Inactive or unknown products are
        skipped, and so are new lines once the cart holds ``max_items``.
        Returns the number of lines merged.
        """
        self._assert_active()
        now = clock.now()
        merged = skipped = 0

        for source_item in source.items:
            product = products.get(str(source_item.product_id))
            if product is None or not product.is_sellable:
                skipped += 1
                continue

            existing = self.item_for(source_item.product_id)
            existing_quantity = existing.quantity if existing else 0
            if not product.track_inventory or product.allow_backorder:
                addable = source_item.quantity
            else:
                addable = min(source_item.quantity, max(0, product.available_quantity - existing_quantity))

            if addable == 0 or (existing is None and len(self.items) >= max_items):
                skipped += 1
                continue

            if existing:
                existing.quantity = existing_quantity + addable
            else:
                self.add_items(
                    CartItem(
                        product_id=str(source_item.product_id),
                        quantity=addable,
                        unit_price=source_item.unit_price,
                        added_at=now,
                    )
                )
            merged += 1

        self.updated_at = now
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(source.id),
                items_merged_count=merged,
                items_skipped_count=skipped,
            )
        )
        return merged

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def mark_converted(self, order_id):
        """The cart became an order; it is read-only from now on."""
        self._assert_active()
        if self.is_empty:
            raise ValidationError({"cart": ["Cannot convert an empty cart"]})

        now = clock.now()
        self.status = CartStatus.CONVERTED.value
        self.updated_at = now
        self.raise_(CartConverted(cart_id=str(self.id), order_id=str(order_id), converted_at=now))

    def is_idle_since(self, cutoff) -> bool:
        return clock.as_utc(self.updated_at) <= clock.as_utc(cutoff)

    def abandon(self):
        if not self.is_active:
            raise CartNotActive(self.id, self.status)
        if self.is_empty:
            raise ValidationError({"cart": ["An empty cart cannot be abandoned"]})

        now = clock.now()
        last_activity = self.updated_at
        self.status = CartStatus.ABANDONED.value
        self.updated_at = now
        self.raise_(
            CartAbandoned(
                cart_id=str(self.id),
                item_count=len(self.items),
                last_activity_at=last_activity,
                abandoned_at=now,
            )
        )

    def expire(self):
        """Retire an idle cart. Converted carts are never expired."""
        current = CartStatus(self.status)
        if current in (CartStatus.CONVERTED, CartStatus.EXPIRED):
            raise CartNotActive(self.id, self.status)
        if current == CartStatus.ACTIVE and not self.is_empty:
            raise ValidationError({"cart": ["Only empty or abandoned carts can expire"]})

        now = clock.now()
        self.status = CartStatus.EXPIRED.value
        self.updated_at = now
        self.raise_(CartExpired(cart_id=str(self.id), previous_status=current.value, expired_at=now))
