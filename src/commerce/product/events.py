"""Domain events for the Product aggregate (Stock Ledger)."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Product")
class ProductRegistered:
    """A product was registered and can now be stocked and sold."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    price = Float(required=True)
    stock_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    reorder_point = Integer(required=True)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)
    registered_at = DateTime(required=True)


@commerce.event(part_of="Product")
class ProductActivated:
    __version__ = 1

    product_id = Identifier(required=True)
    activated_at = DateTime(required=True)


@commerce.event(part_of="Product")
class ProductDeactivated:
    __version__ = 1

    product_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockReserved:
    """Units were put on hold for a pending order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    stock_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    reserved_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockReleased:
    """A hold was released; ``released`` may be less than ``requested``."""

    __version__ = 1

    product_id = Identifier(required=True)
    requested = Integer(required=True)
    released = Integer(required=True)
    stock_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    released_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockDeducted:
    """Units left the warehouse for a confirmed order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    released_from_reserved = Integer(required=True)
    stock_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    deducted_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockAdded:
    """The product was restocked."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    stock_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    restocked_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockRestored:
    """Previously deducted units were returned, e.g. on order cancellation."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    reason = String(max_length=500)
    stock_quantity = Integer(required=True)
    reserved_quantity = Integer(required=True)
    available_quantity = Integer(required=True)
    restored_at = DateTime(required=True)


@commerce.event(part_of="Product")
class LowStockDetected:
    """Available stock fell to or below the low-stock threshold."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    stock_status = String(required=True)
    available_quantity = Integer(required=True)
    low_stock_threshold = Integer(required=True)
    needs_reorder = Boolean(default=False)
    detected_at = DateTime(required=True)
