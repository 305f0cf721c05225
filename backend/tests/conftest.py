"""
Pytest fixtures for uniform order backend tests.

Provides the application, a per-test clean database, directory/catalog
factories, and the test client.
"""

import pytest
from payroll_ops import create_app
from payroll_ops.extensions import db
from payroll_ops.services import catalog_service, employee_service, order_service


CATALOG = [
    ("POLO-SS", "Polo Shirt", 2000),
    ("PANTS", "Work Pants", 1500),
    ("JACKET", "Fleece Jacket", 4500),
    ("APRON", "Apron", 1000),
    ("CAP", "Cap", 1200),
]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'NOTIFICATIONS_ENABLED': True,
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
def employee(db_session):
    """Active employee with a home location."""
    return employee_service.upsert_employee(
        employee_id="E100",
        name="Dana Reyes",
        location="North",
        email="dana@example.com",
    )


@pytest.fixture(scope='function')
def catalog(db_session):
    """Default uniform catalog plus one retired item."""
    items = {}
    for item_id, name, price in CATALOG:
        items[name] = catalog_service.upsert_item(item_id=item_id, item_name=name, price_cents=price)
    items["Old Vest"] = catalog_service.upsert_item(
        item_id="VEST", item_name="Old Vest", price_cents=900, is_active=False
    )
    return items


@pytest.fixture(scope='function')
def make_order(employee, catalog):
    """Factory: create_order with sensible defaults."""
    def _make(items=None, **kwargs):
        kwargs.setdefault("employee", employee.employee_id)
        kwargs.setdefault("location", None)
        kwargs.setdefault("payment_plan", 2)
        kwargs.setdefault("created_by", "tester")
        return order_service.create_order(
            items=items or [{"item_name": "Polo Shirt"}, {"item_name": "Work Pants"}],
            **kwargs,
        )
    return _make
