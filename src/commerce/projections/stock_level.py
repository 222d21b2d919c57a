"""Stock level — inventory-management view of every product's counters."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.product.events import (
    ProductRegistered,
    StockAdded,
    StockDeducted,
    StockReleased,
    StockReserved,
    StockRestored,
)
from commerce.product.product import Product, StockStatus, derive_needs_reorder, derive_stock_status
from commerce.utils.db import fetch_all


@commerce.projection
class StockLevel:
    product_id = Identifier(identifier=True, required=True)
    sku = String(required=True, max_length=50)
    name = String(max_length=255)
    stock_quantity = Integer(default=0)
    reserved_quantity = Integer(default=0)
    available_quantity = Integer(default=0)
    low_stock_threshold = Integer(default=10)
    reorder_point = Integer(default=5)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)
    stock_status = String(max_length=20)
    needs_reorder = Boolean(default=False)
    last_restocked_at = DateTime()
    updated_at = DateTime()


def low_stock_report():
    """Products currently low, out of stock or on backorder."""
    records = fetch_all(current_domain.repository_for(StockLevel)._dao.query, order_field="product_id")
    return [record for record in records if record.stock_status != StockStatus.IN_STOCK.value]


@commerce.projector(projector_for=StockLevel, aggregates=[Product])
class StockLevelProjector:
    @staticmethod
    def _derive(level):
        level.stock_status = derive_stock_status(
            level.available_quantity,
            level.track_inventory,
            level.allow_backorder,
            level.low_stock_threshold,
        ).value
        level.needs_reorder = derive_needs_reorder(level.stock_quantity, level.track_inventory, level.reorder_point)

    @on(ProductRegistered)
    def on_product_registered(self, event):
        level = StockLevel(
            product_id=event.product_id,
            sku=event.sku,
            name=event.name,
            stock_quantity=event.stock_quantity,
            reserved_quantity=0,
            available_quantity=event.stock_quantity,
            low_stock_threshold=event.low_stock_threshold,
            reorder_point=event.reorder_point,
            track_inventory=event.track_inventory,
            allow_backorder=event.allow_backorder,
            last_restocked_at=event.registered_at if event.stock_quantity else None,
            updated_at=event.registered_at,
        )
        self._derive(level)
        current_domain.repository_for(StockLevel).add(level)

    def _apply_levels(self, event, updated_at, restocked=False):
        repo = current_domain.repository_for(StockLevel)
        level = repo.get(event.product_id)
        level.stock_quantity = event.stock_quantity
        level.reserved_quantity = event.reserved_quantity
        level.available_quantity = event.available_quantity
        level.updated_at = updated_at
        if restocked:
            level.last_restocked_at = updated_at
        self._derive(level)
        repo.add(level)

    @on(StockReserved)
    def on_stock_reserved(self, event):
        self._apply_levels(event, event.reserved_at)

    @on(StockReleased)
    def on_stock_released(self, event):
        self._apply_levels(event, event.released_at)

    @on(StockDeducted)
    def on_stock_deducted(self, event):
        self._apply_levels(event, event.deducted_at)

    @on(StockAdded)
    def on_stock_added(self, event):
        self._apply_levels(event, event.restocked_at, restocked=True)

    @on(StockRestored)
    def on_stock_restored(self, event):
        self._apply_levels(event, event.restored_at)
