"""Product registration and catalogue status — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.product.ledger import load_product
from commerce.product.product import Product


@commerce.command(part_of="Product")
class RegisterProduct:
    sku = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0)
    low_stock_threshold = Integer(default=10)
    reorder_point = Integer(default=5)
    track_inventory = Boolean(default=True)
    allow_backorder = Boolean(default=False)


@commerce.command(part_of="Product")
class ActivateProduct:
    product_id = Identifier(required=True)


@commerce.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@commerce.command_handler(part_of=Product)
class ProductRegistrationHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            sku=command.sku,
            name=command.name,
            price=command.price,
            stock_quantity=command.stock_quantity or 0,
            low_stock_threshold=command.low_stock_threshold,
            reorder_point=command.reorder_point,
            track_inventory=command.track_inventory,
            allow_backorder=command.allow_backorder,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ActivateProduct)
    def activate_product(self, command):
        product = load_product(command.product_id)
        product.activate()
        current_domain.repository_for(Product).add(product)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        product = load_product(command.product_id)
        product.deactivate()
        current_domain.repository_for(Product).add(product)
