"""
Pytest fixtures for shopledger backend tests.

Provides the Flask app on in-memory SQLite, a test client, per-test table
cleanup, and a seeded in-memory Ledger for service tests.
"""

from decimal import Decimal

import pytest

from shopledger import create_app
from shopledger.config import Config
from shopledger.extensions import db
from shopledger.records import Customer, Product, ProductType, Supplier
from shopledger.services.ledger_service import Ledger, CUSTOMERS, PRODUCTS, SUPPLIERS


OWNER_ID = "shop-1"


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOW_STOCK_THRESHOLD = "5"
    B2B_PRICE_MARKUP = "1.5"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

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
        db.session.remove()


@pytest.fixture
def ledger():
    """
    One shop with:
    - p1: PRODUCT, qty 10, cost 5, price 8
    - p2: PRODUCT, qty 4, cost 20, price 30, minStock 5
    - svc: SERVICE, price 15
    - c1: customer, debt 0
    - s1: supplier, debt 0
    """
    ledger = Ledger(OWNER_ID)
    ledger.put(PRODUCTS, Product(id="p1", name="Tea", quantity=Decimal("10"), cost=Decimal("5.00"), price=Decimal("8.00")))
    ledger.put(PRODUCTS, Product(
        id="p2", name="Coffee", quantity=Decimal("4"), cost=Decimal("20.00"), price=Decimal("30.00"),
        min_stock=Decimal("5"),
    ))
    ledger.put(PRODUCTS, Product(id="svc", name="Delivery", type=ProductType.SERVICE, price=Decimal("15.00")))
    ledger.put(CUSTOMERS, Customer(id="c1", name="Anna", phone="+70000000001"))
    ledger.put(SUPPLIERS, Supplier(id="s1", name="Wholesale Ltd"))
    ledger.dirty_keys.clear()
    return ledger


@pytest.fixture
def seeded_store(db_session, ledger):
    """The seeded ledger saved under OWNER_ID."""
    from shopledger.services import store_service

    store_service.save_ledger(ledger, ledger.to_collections().keys())
    return ledger