"""
Stock ledger tests.

Verifies:
- check_available counts quantities already reserved by the same cart
- decrement never drives stock below zero
- the database itself rejects negative stock
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from pharmapos.models import Product
from pharmapos.services import stock_service
from pharmapos.services.stock_service import (
    CommitConflictError,
    InsufficientStockError,
    ProductNotFoundError,
)


class TestCheckAvailable:

    def test_enough_stock_returns_product(self, db_session, product):
        found = stock_service.check_available(product.id, 5)
        assert found.id == product.id
        db_session.rollback()

    def test_insufficient_stock_details(self, db_session, product):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.check_available(product.id, 6)
        err = exc.value
        assert (err.available, err.requested) == (5, 6)
        assert err.details["product_name"] == "Paracetamol 500mg"
        assert str(err) == "Insufficient stock for Paracetamol 500mg. Available: 5, Requested: 6"
        db_session.rollback()

    def test_already_reserved_counts_toward_request(self, db_session, product):
        with pytest.raises(InsufficientStockError) as exc:
            stock_service.check_available(product.id, 3, already_reserved=3)
        assert exc.value.requested == 6
        db_session.rollback()

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError) as exc:
            stock_service.check_available(987654, 1)
        assert exc.value.details == {"product_id": 987654}
        db_session.rollback()


class TestDecrement:

    def test_decrements_and_bumps_version(self, db_session, product):
        version = product.version_id
        stock_service.decrement(product.id, 2)
        db_session.commit()

        refreshed = db_session.get(Product, product.id)
        assert refreshed.stock == 3
        assert refreshed.version_id == version + 1

    def test_loaded_instance_sees_new_stock(self, db_session, product):
        assert product.stock == 5
        stock_service.decrement(product.id, 1)
        assert product.stock == 4
        db_session.rollback()

    def test_oversell_is_a_conflict_and_changes_nothing(self, db_session, product):
        with pytest.raises(CommitConflictError) as exc:
            stock_service.decrement(product.id, 6)
        assert exc.value.retriable is True
        assert exc.value.details["retriable"] is True
        db_session.rollback()

        assert db_session.get(Product, product.id).stock == 5

    def test_exact_stock_reaches_zero(self, db_session, product):
        stock_service.decrement(product.id, 5)
        db_session.commit()
        assert db_session.get(Product, product.id).stock == 0

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, db_session, product, quantity):
        with pytest.raises(ValueError):
            stock_service.decrement(product.id, quantity)


class TestStockConstraint:

    def test_database_rejects_negative_stock(self, db_session, product):
        with pytest.raises(IntegrityError):
            db_session.execute(
                text("UPDATE products SET stock = -1 WHERE id = :id"),
                {"id": product.id},
            )
        db_session.rollback()
