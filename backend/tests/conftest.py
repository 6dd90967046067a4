"""
Pytest fixtures for backend tests.

Provides test database setup, catalog/order factories, and test client.
"""

import pytest
from app import create_app
from app.extensions import db
from app.models import Product, Shipper, ShipperRate
from app.services import order_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_STORE_NAME': 'Test Store',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, stock=10, purchase_price_cents=..., ...)."""
    def _make(name="Widget", *, stock=10, purchase_price_cents=6000, sell_price_cents=10000, stock_threshold=None):
        product = Product(
            name=name,
            stock=stock,
            purchase_price_cents=purchase_price_cents,
            sell_price_cents=sell_price_cents,
            stock_threshold=stock_threshold,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product with 10 units on hand."""
    return make_product("Widget", stock=10)


@pytest.fixture(scope='function')
def shipper(db_session):
    """Shipper delivering to Cairo (50.00, 10.00 off) with a 15.00 return fee."""
    s = Shipper(name="Fast Courier", return_cost_cents=1500)
    s.rates = [
        ShipperRate(governorate="Cairo", price_cents=5000, discount_cents=1000),
        ShipperRate(governorate="Giza", price_cents=6000, discount_cents=None),
    ]
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory: make_order([(product, qty), ...], shipper=None, **fields) -> Order (UNDER_REVIEW)."""
    def _make(lines, *, shipper=None, **fields):
        patch = {
            "customer_name": "Mona",
            "phone": "01000000000",
            "governorate": "Cairo",
            "address": "1 Nile St",
        }
        if shipper is not None:
            patch["shipper_id"] = shipper.id
        patch.update(fields)
        items = [{"product_id": p.id if hasattr(p, "id") else p, "quantity": qty} for p, qty in lines]
        return order_service.create_order(patch=patch, items=items)

    return _make

