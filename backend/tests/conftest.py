"""
Pytest fixtures for PharmaPOS backend tests.

Provides the test app, a per-test clean database, catalog/user fixtures and
header helpers for the gateway identity.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from pharmapos import create_app
from pharmapos.decorators import USER_ID_HEADER
from pharmapos.extensions import db
from pharmapos.models import Category, Product, Supplier, User


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LOW_STOCK_THRESHOLD': 10,
        'EXPIRY_MONTHS_AHEAD': 3,
        'PRODUCT_DELETE_POLICY': 'independent',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        db.session.remove()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    user = User(name="Admin", email="admin@test.local", role="ADMIN", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier(db_session):
    user = User(name="Kasir", email="kasir@test.local", role="CASHIER", is_active=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def category(db_session):
    cat = Category(name="Obat Bebas", description="Tanpa resep")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def supplier(db_session):
    sup = Supplier(name="PT Kimia Farma", phone="021-555-0101", address="Jl. Veteran No. 9")
    db_session.add(sup)
    db_session.commit()
    return sup


def _make_product(session, category, **overrides) -> Product:
    """Helper to insert a product with sensible defaults."""
    fields = {
        "name": "Paracetamol 500mg",
        "sell_price": Decimal("5000"),
        "purchase_price": Decimal("3500"),
        "buy_price": Decimal("3500"),
        "stock": 5,
        "unit": "strip",
        "is_active": True,
        "category_id": category.id,
    }
    fields.update(overrides)
    product = Product(**fields)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session, category):
    """Paracetamol: stock 5, sell price 5000."""
    return _make_product(db_session, category)


@pytest.fixture(scope='function')
def vitamin(db_session, category):
    return _make_product(
        db_session,
        category,
        name="Vitamin C 1000mg",
        sell_price=Decimal("12500"),
        stock=20,
        expiration_date=datetime(2030, 1, 1),
    )


def identity_headers(user: User) -> dict:
    """Helper to create the gateway identity header."""
    return {USER_ID_HEADER: str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin):
    return identity_headers(admin)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return identity_headers(cashier)


@pytest.fixture(scope='function')
def product_factory(db_session, category):
    """Insert extra products: product_factory(name="X", stock=3, ...)."""
    def factory(**overrides):
        return _make_product(db_session, category, **overrides)
    return factory
