"""Product aggregate — the Stock Ledger.

The Product is the only writer of stock numbers. Every other component reads
``available_quantity`` but routes mutations through the methods below.

Stock Level Model:
    stock_quantity:    Physical on-hand count
    reserved_quantity: Held for orders being checked out
    available:         stock_quantity - reserved_quantity (derived, never stored)

Each mutation is a read-modify-write on a single aggregate. Protean checks the
aggregate version on save, so two requests that loaded the same version cannot
both commit; the loser is retried against fresh counters.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from commerce.domain import commerce
from commerce.errors import InsufficientStock, InvalidQuantity
from commerce.product.events import (
    LowStockDetected,
    ProductActivated,
    ProductDeactivated,
    ProductRegistered,
    StockAdded,
    StockDeducted,
    StockReleased,
    StockReserved,
    StockRestored,
)
from commerce.utils import clock


class ProductStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DISCONTINUED = "Discontinued"


class StockStatus(Enum):
    IN_STOCK = "In_Stock"
    LOW_STOCK = "Low_Stock"
    OUT_OF_STOCK = "Out_Of_Stock"
    BACKORDER = "Backorder"


_SHORTAGE_STATUSES = {StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK, StockStatus.BACKORDER}


def derive_stock_status(available, track_inventory, allow_backorder, low_stock_threshold) -> StockStatus:
    if not track_inventory:
        return StockStatus.IN_STOCK
    if available <= 0:
        return StockStatus.BACKORDER if allow_backorder else StockStatus.OUT_OF_STOCK
    if available <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def derive_needs_reorder(stock_quantity, track_inventory, reorder_point) -> bool:
    return bool(track_inventory) and stock_quantity <= reorder_point


def require_positive_quantity(quantity):
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(quantity)


@commerce.aggregate
class Product:
    sku = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    stock_quantity = Integer(default=0)
    reserved_quantity = Integer(default=0, min_value=0)
    low_stock_threshold = Integer(default=10, min_value=0)
    reorder_point = Integer(default=5, min_value=0)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)
    last_restocked_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def reserved_stock_cannot_exceed_on_hand(self):
        if not self.track_inventory or self.allow_backorder:
            return
        if (self.reserved_quantity or 0) > (self.stock_quantity or 0):
            raise ValidationError({"reserved_quantity": ["Reserved quantity cannot exceed stock quantity"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        sku,
        name,
        price,
        stock_quantity=0,
        low_stock_threshold=10,
        reorder_point=5,
        track_inventory=True,
        allow_backorder=False,
    ):
        if stock_quantity < 0:
            raise InvalidQuantity(stock_quantity, reason="Initial stock cannot be negative")

        now = clock.now()
        product = cls(
            sku=sku,
            name=name,
            price=price,
            status=ProductStatus.ACTIVE.value,
            stock_quantity=stock_quantity,
            reserved_quantity=0,
            low_stock_threshold=low_stock_threshold,
            reorder_point=reorder_point,
            track_inventory=track_inventory,
            allow_backorder=allow_backorder,
            last_restocked_at=now if stock_quantity else None,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                sku=sku,
                name=name,
                price=price,
                stock_quantity=stock_quantity,
                low_stock_threshold=low_stock_threshold,
                reorder_point=reorder_point,
                track_inventory=track_inventory,
                allow_backorder=allow_backorder,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def available_quantity(self) -> int:
        return (self.stock_quantity or 0) - (self.reserved_quantity or 0)

    @property
    def is_sellable(self) -> bool:
        return ProductStatus(self.status) == ProductStatus.ACTIVE

    def stock_status(self) -> StockStatus:
        return derive_stock_status(
            self.available_quantity,
            self.track_inventory,
            self.allow_backorder,
            self.low_stock_threshold,
        )

    def needs_reorder(self) -> bool:
        return derive_needs_reorder(self.stock_quantity or 0, self.track_inventory, self.reorder_point)

    def can_supply(self, quantity) -> bool:
        """Advisory availability check; nothing is reserved."""
        if not self.track_inventory or self.allow_backorder:
            return True
        return self.available_quantity >= quantity

    def _levels(self):
        return {
            "stock_quantity": self.stock_quantity,
            "reserved_quantity": self.reserved_quantity,
            "available_quantity": self.available_quantity,
        }

    def _check_low_stock(self, previous_status):
        current = self.stock_status()
        if current in _SHORTAGE_STATUSES and current != previous_status:
            self.raise_(
                LowStockDetected(
                    product_id=str(self.id),
                    sku=self.sku,
                    stock_status=current.value,
                    available_quantity=self.available_quantity,
                    low_stock_threshold=self.low_stock_threshold,
                    needs_reorder=self.needs_reorder(),
                    detected_at=clock.now(),
                )
            )

    # -------------------------------------------------------------------
    # Catalogue status
    # -------------------------------------------------------------------
    def activate(self):
        if ProductStatus(self.status) == ProductStatus.ACTIVE:
            return
        now = clock.now()
        self.status = ProductStatus.ACTIVE.value
        self.updated_at = now
        self.raise_(ProductActivated(product_id=str(self.id), activated_at=now))

    def deactivate(self):
        if ProductStatus(self.status) == ProductStatus.INACTIVE:
            return
        now = clock.now()
        self.status = ProductStatus.INACTIVE.value
        self.updated_at = now
        self.raise_(ProductDeactivated(product_id=str(self.id), deactivated_at=now))

    # -------------------------------------------------------------------
    # Ledger operations
    # -------------------------------------------------------------------
    def reserve(self, quantity):
        """Hold ``quantity`` units. No-op when inventory is not tracked."""
        require_positive_quantity(quantity)
        if not self.track_inventory:
            return

        available = self.available_quantity
        if available < quantity and not self.allow_backorder:
            raise InsufficientStock(self.id, requested=quantity, available=available)

        previous_status = self.stock_status()
        now = clock.now()
        self.reserved_quantity = (self.reserved_quantity or 0) + quantity
        self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                reserved_at=now,
                **self._levels(),
            )
        )
        self._check_low_stock(previous_status)

    def release(self, quantity):
        """Release up to ``quantity`` held units; never goes below zero."""
        require_positive_quantity(quantity)
        if not self.track_inventory:
            return 0

        released = min(quantity, self.reserved_quantity or 0)
        now = clock.now()
        self.reserved_quantity = (self.reserved_quantity or 0) - released
        self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                requested=quantity,
                released=released,
                released_at=now,
                **self._levels(),
            )
        )
        return released

    def deduct(self, quantity):
        """Make a sale permanent: release the hold, then take units off the shelf.

        Checked before anything changes, so a failed deduction leaves the
        counters untouched.
        """
        require_positive_quantity(quantity)
        if not self.track_inventory:
            return

        on_hand = self.stock_quantity or 0
        if on_hand < quantity and not self.allow_backorder:
            raise InsufficientStock(self.id, requested=quantity, available=on_hand)

        previous_status = self.stock_status()
        released = min(quantity, self.reserved_quantity or 0)
        now = clock.now()
        # Reserved goes down first so reserved <= stock holds at every step
        self.reserved_quantity = (self.reserved_quantity or 0) - released
        self.stock_quantity = on_hand - quantity
        self.updated_at = now

        self.raise_(
            StockDeducted(
                product_id=str(self.id),
                quantity=quantity,
                released_from_reserved=released,
                deducted_at=now,
                **self._levels(),
            )
        )
        self._check_low_stock(previous_status)

    def add_stock(self, quantity):
        """Restock the product."""
        require_positive_quantity(quantity)

        now = clock.now()
        self.stock_quantity = (self.stock_quantity or 0) + quantity
        self.last_restocked_at = now
        self.updated_at = now

        self.raise_(
            StockAdded(
                product_id=str(self.id),
                quantity=quantity,
                restocked_at=now,
                **self._levels(),
            )
        )

    def restore_stock(self, quantity, reason=None):
        """Put back units that were deducted for an order that did not go ahead."""
        require_positive_quantity(quantity)
        if not self.track_inventory:
            return

        now = clock.now()
        self.stock_quantity = (self.stock_quantity or 0) + quantity
        self.updated_at = now

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                quantity=quantity,
                reason=reason,
                restored_at=now,
                **self._levels(),
            )
        )
