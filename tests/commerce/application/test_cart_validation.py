"""Application tests for the cart availability report."""

import pytest
from commerce.cart.cart import ShoppingCart
from commerce.cart.items import AddToCart
from commerce.cart.management import CreateCart
from commerce.cart.validation import LineIssue, validate_cart
from commerce.errors import ResourceNotFound
from commerce.product import ledger
from commerce.product.product import Product
from commerce.product.registration import DeactivateProduct, RegisterProduct
from protean import current_domain


def _register_product(sku="SKU-1", price=10.0, stock=10):
    return current_domain.process(
        RegisterProduct(sku=sku, name=f"Product {sku}", price=price, stock_quantity=stock),
        asynchronous=False,
    )


def _cart_with(*lines):
    cart_id = current_domain.process(CreateCart(owner_kind="User", owner_reference="cust-001"), asynchronous=False)
    for product_id, quantity in lines:
        current_domain.process(
            AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity),
            asynchronous=False,
        )
    return cart_id


def _line(report, product_id):
    return next(line for line in report.lines if line.product_id == product_id)


class TestValidateCart:
    def test_cart_that_can_be_checked_out_is_valid(self):
        product_id = _register_product(stock=10)
        report = validate_cart(_cart_with((product_id, 3)))

        assert report.valid is True
        line = _line(report, product_id)
        assert line.requested == 3
        assert line.available == 10
        assert line.sellable is True
        assert line.issues == ()

    def test_stock_reserved_elsewhere_shows_as_insufficient(self):
        product_id = _register_product(stock=5)
        cart_id = _cart_with((product_id, 4))
        ledger.reserve(product_id, 3)

        report = validate_cart(cart_id)

        assert report.valid is False
        line = _line(report, product_id)
        assert line.available == 2
        assert line.issues == (LineIssue.INSUFFICIENT_STOCK,)
        assert line.ok is False

    def test_sold_out_product_shows_as_out_of_stock(self):
        product_id = _register_product(stock=2)
        cart_id = _cart_with((product_id, 2))
        ledger.reserve(product_id, 2)

        line = _line(validate_cart(cart_id), product_id)
        assert line.available == 0
        assert line.issues == (LineIssue.OUT_OF_STOCK,)

    def test_deactivated_product_is_unavailable(self):
        product_id = _register_product()
        cart_id = _cart_with((product_id, 1))
        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)

        line = _line(validate_cart(cart_id), product_id)
        assert line.sellable is False
        assert line.issues == (LineIssue.UNAVAILABLE,)

    def test_price_change_is_reported_without_failing_the_cart(self):
        product_id = _register_product(price=10.0)
        cart_id = _cart_with((product_id, 1))
        repo = current_domain.repository_for(Product)
        product = repo.get(product_id)
        product.price = 12.0
        repo.add(product)

        report = validate_cart(cart_id)

        assert report.valid is True
        assert report.price_changed is True
        line = _line(report, product_id)
        assert line.unit_price == 10.0
        assert line.current_price == 12.0
        assert line.issues == (LineIssue.PRICE_CHANGED,)

    def test_each_line_is_reported(self):
        in_stock = _register_product(sku="A", stock=10)
        short = _register_product(sku="B", stock=3)
        cart_id = _cart_with((in_stock, 2), (short, 3))
        ledger.reserve(short, 2)

        report = validate_cart(cart_id)

        assert len(report.lines) == 2
        assert _line(report, in_stock).ok is True
        assert _line(report, short).ok is False
        assert report.valid is False

    def test_report_reserves_nothing(self):
        product_id = _register_product(stock=5)
        cart_id = _cart_with((product_id, 5))

        validate_cart(cart_id)

        assert current_domain.repository_for(Product).get(product_id).reserved_quantity == 0
        assert current_domain.repository_for(ShoppingCart).get(cart_id).items[0].quantity == 5

    def test_unknown_cart(self):
        with pytest.raises(ResourceNotFound):
            validate_cart("missing-cart")
