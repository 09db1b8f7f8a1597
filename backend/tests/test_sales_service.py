"""
Sale processing tests.

Verifies:
- A committed sale decrements stock and records priced lines
- Rejected sales persist nothing (no transaction, no stock change)
- Line prices are snapshots; later product edits never change them
- Cart lines are checked in order against cumulative quantities
- Concurrent checkouts cannot oversell a product
"""

import threading
from datetime import timedelta
from decimal import Decimal

import pytest

from pharmapos import create_app
from pharmapos.extensions import db
from pharmapos.models import (
    Category,
    ImmutableRecordError,
    Product,
    SaleLine,
    SaleTransaction,
    User,
)
from pharmapos.services import document_service, products_service, sales_service
from pharmapos.services.sales_service import SaleNotFoundError
from pharmapos.services.stock_service import InsufficientStockError, ProductNotFoundError
from pharmapos.time_utils import utcnow


def _stock(session, product_id: int) -> int:
    return session.get(Product, product_id).stock


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestCreateSale:

    def test_sale_decrements_stock_and_totals_lines(self, db_session, cashier, product):
        sale = sales_service.create_sale(
            cashier.id, [{"product_id": product.id, "quantity": 3}], "CASH",
        )

        assert _stock(db_session, product.id) == 2
        assert sale.total_price == Decimal("15000.00")
        assert sale.payment_method == "CASH"
        assert sale.cashier_id == cashier.id
        assert len(sale.lines) == 1
        line = sale.lines[0]
        assert (line.product_id, line.quantity) == (product.id, 3)
        assert line.price == Decimal("5000.00")
        assert line.subtotal == Decimal("15000.00")
        assert line.product_name == "Paracetamol 500mg"

    def test_multi_line_total(self, db_session, cashier, product, vitamin):
        sale = sales_service.create_sale(
            cashier.id,
            [
                {"product_id": product.id, "quantity": 1},
                {"product_id": vitamin.id, "quantity": 2},
            ],
            "QRIS",
            notes="resep dr. Andi",
        )
        assert sale.total_price == Decimal("30000.00")
        assert sum(line.subtotal for line in sale.lines) == sale.total_price
        assert sale.notes == "resep dr. Andi"
        assert _stock(db_session, vitamin.id) == 18

    def test_transaction_numbers_are_unique_and_prefixed(self, db_session, cashier, product):
        first = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")
        second = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")

        assert first.transaction_no.startswith("TRX-")
        assert second.transaction_no.startswith("TRX-")
        assert int(second.transaction_no[4:]) > int(first.transaction_no[4:])

    def test_same_product_on_two_lines(self, db_session, cashier, product):
        sale = sales_service.create_sale(
            cashier.id,
            [
                {"product_id": product.id, "quantity": 2},
                {"product_id": product.id, "quantity": 3},
            ],
            "CASH",
        )
        assert len(sale.lines) == 2
        assert _stock(db_session, product.id) == 0


# =============================================================================
# REJECTIONS
# =============================================================================


class TestRejectedSale:

    def test_insufficient_stock_changes_nothing(self, db_session, cashier, product):
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 10}], "CASH")

        assert exc.value.available == 5
        assert exc.value.requested == 10
        assert _stock(db_session, product.id) == 5
        assert db_session.query(SaleTransaction).count() == 0
        assert db_session.query(SaleLine).count() == 0

    def test_cumulative_quantity_over_stock_rejected(self, db_session, cashier, product):
        with pytest.raises(InsufficientStockError) as exc:
            sales_service.create_sale(
                cashier.id,
                [
                    {"product_id": product.id, "quantity": 3},
                    {"product_id": product.id, "quantity": 3},
                ],
                "CASH",
            )
        assert exc.value.requested == 6
        assert _stock(db_session, product.id) == 5

    def test_first_failing_line_is_reported(self, db_session, cashier, product):
        with pytest.raises(ProductNotFoundError):
            sales_service.create_sale(
                cashier.id,
                [
                    {"product_id": 999999, "quantity": 1},
                    {"product_id": product.id, "quantity": 50},
                ],
                "CASH",
            )
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(
                cashier.id,
                [
                    {"product_id": product.id, "quantity": 50},
                    {"product_id": 999999, "quantity": 1},
                ],
                "CASH",
            )

    def test_failed_line_does_not_decrement_earlier_lines(self, db_session, cashier, product, vitamin):
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(
                cashier.id,
                [
                    {"product_id": vitamin.id, "quantity": 5},
                    {"product_id": product.id, "quantity": 6},
                ],
                "CASH",
            )
        assert _stock(db_session, vitamin.id) == 20
        assert _stock(db_session, product.id) == 5

    def test_session_usable_after_rejection(self, db_session, cashier, product):
        with pytest.raises(InsufficientStockError):
            sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 9}], "CASH")

        sale = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 5}], "CASH")
        assert sale.id is not None
        assert _stock(db_session, product.id) == 0


# =============================================================================
# IMMUTABILITY
# =============================================================================


class TestSaleRecords:

    def test_line_price_is_a_snapshot(self, db_session, cashier, product):
        sale = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")

        products_service.update_product(
            product_id=product.id,
            patch={"sell_price": Decimal("7000"), "name": "Paracetamol 500mg (baru)"},
        )

        line = db_session.get(SaleTransaction, sale.id).lines[0]
        assert line.price == Decimal("5000.00")
        assert line.product_name == "Paracetamol 500mg"

    def test_sale_cannot_be_updated(self, db_session, cashier, product):
        sale = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")

        sale.notes = "edited"
        with pytest.raises(ImmutableRecordError):
            db_session.commit()
        db_session.rollback()

        sale.lines[0].quantity = 4
        with pytest.raises(ImmutableRecordError):
            db_session.commit()
        db_session.rollback()

        assert db_session.get(SaleTransaction, sale.id).notes is None


# =============================================================================
# QUERIES
# =============================================================================


class TestSaleQueries:

    def test_get_sale(self, db_session, cashier, product):
        sale = sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")
        assert sales_service.get_sale(sale.id).transaction_no == sale.transaction_no
        with pytest.raises(SaleNotFoundError):
            sales_service.get_sale(sale.id + 1000)

    def test_list_and_statistics(self, db_session, cashier, product, vitamin):
        sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 2}], "CASH")
        sales_service.create_sale(cashier.id, [{"product_id": vitamin.id, "quantity": 1}], "QRIS")

        sales = sales_service.list_sales()
        assert len(sales) == 2
        assert sales[0].id > sales[1].id

        stats = sales_service.sales_statistics()
        assert stats == {"total_transactions": 2, "total_sales": "22500.00"}

    def test_date_range_filter(self, db_session, cashier, product):
        sales_service.create_sale(cashier.id, [{"product_id": product.id, "quantity": 1}], "CASH")
        future = utcnow() + timedelta(days=1)

        assert sales_service.list_sales(start=future) == []
        assert sales_service.sales_statistics(start=future) == {
            "total_transactions": 0,
            "total_sales": "0.00",
        }


class TestTransactionNumbers:

    def test_numbers_increase_within_same_millisecond(self, app, monkeypatch):
        monkeypatch.setattr(document_service, "_now_millis", lambda: 1)
        first = document_service.next_transaction_number()
        second = document_service.next_transaction_number()
        assert int(second[4:]) == int(first[4:]) + 1

    def test_custom_prefix(self, app):
        assert document_service.next_transaction_number("POS-").startswith("POS-")


# =============================================================================
# CONCURRENCY
# =============================================================================


@pytest.fixture
def file_app(tmp_path):
    """A second app on a file-backed SQLite database shared by worker threads."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.engine.dispose()


class TestConcurrentCheckout:

    def test_parallel_sales_cannot_oversell(self, file_app):
        cat = Category(name="Obat Bebas")
        cashier = User(name="Kasir", email="kasir@race.local", role="CASHIER")
        db.session.add_all([cat, cashier])
        db.session.flush()
        product = Product(
            name="Paracetamol 500mg",
            sell_price=Decimal("5000"),
            purchase_price=Decimal("0"),
            buy_price=Decimal("0"),
            stock=5,
            category_id=cat.id,
        )
        db.session.add(product)
        db.session.commit()
        product_id, cashier_id = product.id, cashier.id

        workers = 10
        barrier = threading.Barrier(workers)
        outcomes = []

        def checkout():
            with file_app.app_context():
                barrier.wait()
                try:
                    sales_service.create_sale(cashier_id, [{"product_id": product_id, "quantity": 1}], "CASH")
                    outcomes.append("sold")
                except InsufficientStockError:
                    outcomes.append("insufficient")

        threads = [threading.Thread(target=checkout) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert sorted(outcomes) == ["insufficient"] * 5 + ["sold"] * 5
        db.session.expire_all()
        assert db.session.get(Product, product_id).stock == 0
        assert db.session.query(SaleTransaction).count() == 5
