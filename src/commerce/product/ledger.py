"""Stock Ledger — commands, handler and queries.

The module-level functions (``reserve``, ``release``, ``deduct``,
``add_stock``) are the public entry points for inventory management. Each one
dispatches a command and retries it when another request committed a change
to the same product first.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import ResourceNotFound
from commerce.product.product import Product
from commerce.utils.concurrency import process_with_retry

logger = structlog.get_logger(__name__)


def load_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        raise ResourceNotFound("Product", product_id) from None


def load_sellable_product(product_id) -> Product:
    product = load_product(product_id)
    if not product.is_sellable:
        raise ResourceNotFound("Product", product_id, reason=f"Product {product_id} is not available for sale")
    return product


@commerce.command(part_of="Product")
class ReserveStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="Product")
class ReleaseStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="Product")
class DeductStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="Product")
class AddStock:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    reference = String(max_length=255)


@commerce.command_handler(part_of=Product)
class StockLedgerHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        product = load_product(command.product_id)
        product.reserve(command.quantity)
        current_domain.repository_for(Product).add(product)
        logger.info(
            "Stock reserved",
            product_id=str(product.id),
            quantity=command.quantity,
            available=product.available_quantity,
        )

    @handle(ReleaseStock)
    def release_stock(self, command):
        product = load_product(command.product_id)
        released = product.release(command.quantity)
        current_domain.repository_for(Product).add(product)
        logger.info(
            "Stock released",
            product_id=str(product.id),
            requested=command.quantity,
            released=released,
        )
        return released

    @handle(DeductStock)
    def deduct_stock(self, command):
        product = load_product(command.product_id)
        product.deduct(command.quantity)
        current_domain.repository_for(Product).add(product)
        logger.info(
            "Stock deducted",
            product_id=str(product.id),
            quantity=command.quantity,
            stock_quantity=product.stock_quantity,
        )

    @handle(AddStock)
    def add_stock(self, command):
        product = load_product(command.product_id)
        product.add_stock(command.quantity)
        current_domain.repository_for(Product).add(product)
        logger.info(
            "Stock added",
            product_id=str(product.id),
            quantity=command.quantity,
            reference=command.reference,
            stock_quantity=product.stock_quantity,
        )


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def reserve(product_id, quantity):
    return process_with_retry(ReserveStock(product_id=str(product_id), quantity=quantity))


def release(product_id, quantity):
    return process_with_retry(ReleaseStock(product_id=str(product_id), quantity=quantity))


def deduct(product_id, quantity):
    return process_with_retry(DeductStock(product_id=str(product_id), quantity=quantity))


def add_stock(product_id, quantity, reference=None):
    return process_with_retry(AddStock(product_id=str(product_id), quantity=quantity, reference=reference))


def available_quantity(product_id) -> int:
    return load_product(product_id).available_quantity


def stock_status(product_id):
    return load_product(product_id).stock_status()
