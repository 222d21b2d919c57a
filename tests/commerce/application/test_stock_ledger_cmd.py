"""Application tests for product registration and stock ledger commands."""

import pytest
from commerce.errors import InsufficientStock, InvalidQuantity, ResourceNotFound
from commerce.product import ledger
from commerce.product.ledger import AddStock, DeductStock, ReleaseStock, ReserveStock
from commerce.product.product import Product, StockStatus
from commerce.product.registration import ActivateProduct, DeactivateProduct, RegisterProduct
from protean import current_domain
from protean.exceptions import ExpectedVersionError


def _register_product(**overrides):
    defaults = {"sku": "WIDGET-001", "name": "Widget", "price": 25.0, "stock_quantity": 10}
    defaults.update(overrides)
    return current_domain.process(RegisterProduct(**defaults), asynchronous=False)


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


class TestRegisterProductCommand:
    def test_register_persists(self):
        product_id = _register_product()
        product = _product(product_id)
        assert product.sku == "WIDGET-001"
        assert product.stock_quantity == 10
        assert product.is_sellable

    def test_deactivate_and_activate(self):
        product_id = _register_product()
        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
        assert _product(product_id).is_sellable is False

        current_domain.process(ActivateProduct(product_id=product_id), asynchronous=False)
        assert _product(product_id).is_sellable is True


class TestStockCommands:
    def test_reserve_persists(self):
        product_id = _register_product()
        current_domain.process(ReserveStock(product_id=product_id, quantity=4), asynchronous=False)
        product = _product(product_id)
        assert product.reserved_quantity == 4
        assert product.available_quantity == 6

    def test_release_returns_released_amount(self):
        product_id = _register_product()
        current_domain.process(ReserveStock(product_id=product_id, quantity=2), asynchronous=False)
        released = current_domain.process(ReleaseStock(product_id=product_id, quantity=5), asynchronous=False)
        assert released == 2
        assert _product(product_id).reserved_quantity == 0

    def test_deduct_persists(self):
        product_id = _register_product()
        current_domain.process(DeductStock(product_id=product_id, quantity=3), asynchronous=False)
        assert _product(product_id).stock_quantity == 7

    def test_add_stock_persists(self):
        product_id = _register_product(stock_quantity=0)
        current_domain.process(AddStock(product_id=product_id, quantity=12, reference="PO-1"), asynchronous=False)
        product = _product(product_id)
        assert product.stock_quantity == 12
        assert product.last_restocked_at is not None

    def test_failed_reserve_changes_nothing(self):
        product_id = _register_product(stock_quantity=5)
        with pytest.raises(InsufficientStock):
            current_domain.process(ReserveStock(product_id=product_id, quantity=6), asynchronous=False)
        assert _product(product_id).reserved_quantity == 0


class TestLedgerFunctions:
    def test_reserve_release_deduct_sequence(self):
        product_id = _register_product(stock_quantity=20)
        ledger.reserve(product_id, 8)
        ledger.release(product_id, 3)
        ledger.deduct(product_id, 5)

        product = _product(product_id)
        assert product.stock_quantity == 15
        assert product.reserved_quantity == 0
        assert ledger.available_quantity(product_id) == 15

    def test_stock_status(self):
        product_id = _register_product(stock_quantity=12, low_stock_threshold=10)
        assert ledger.stock_status(product_id) == StockStatus.IN_STOCK
        ledger.deduct(product_id, 5)
        assert ledger.stock_status(product_id) == StockStatus.LOW_STOCK

    def test_unknown_product(self):
        with pytest.raises(ResourceNotFound) as exc:
            ledger.reserve("does-not-exist", 1)
        assert exc.value.details() == {"resource": "Product", "id": "does-not-exist"}

    def test_invalid_quantity(self):
        product_id = _register_product()
        with pytest.raises(InvalidQuantity):
            ledger.reserve(product_id, 0)

    def test_insufficient_stock_details(self):
        product_id = _register_product(stock_quantity=5)
        with pytest.raises(InsufficientStock) as exc:
            ledger.reserve(product_id, 6)
        assert exc.value.details() == {"product_id": product_id, "requested": 6, "available": 5}


class TestConcurrentModification:
    def test_stale_copy_cannot_overwrite_newer_version(self):
        product_id = _register_product(stock_quantity=5)
        repo = current_domain.repository_for(Product)
        first = repo.get(product_id)
        second = repo.get(product_id)

        first.reserve(3)
        repo.add(first)

        second.reserve(3)
        with pytest.raises(ExpectedVersionError):
            repo.add(second)

        assert _product(product_id).reserved_quantity == 3

    def test_retry_sees_fresh_counters(self):
        product_id = _register_product(stock_quantity=5)
        ledger.reserve(product_id, 3)

        # A second request for 3 re-reads the 2 remaining units and is rejected
        with pytest.raises(InsufficientStock) as exc:
            ledger.reserve(product_id, 3)
        assert exc.value.available == 2
