"""Shared fixtures: app on in-memory SQLite, fresh schema per test, sample master data."""

from datetime import date
from decimal import Decimal

import pytest

from billing import create_app, store
from billing.extensions import db
from config import TestConfig


@pytest.fixture
def app():
    """Application with a fresh schema, inside an app context."""
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def route(app):
    return store.create_route("North")


@pytest.fixture
def vendor(route):
    return store.create_vendor("Shree Traders", route.id, contact="9876543210", address="Main Road, Rajkot")


@pytest.fixture
def namkeen(app):
    """Namkeen item, rate 10, 5% GST."""
    return store.create_item("Sev", "સેવ", Decimal("10"), "Namkeen", True, Decimal("5"))


@pytest.fixture
def fryums(app):
    """Fryums item, rate 20, no GST."""
    return store.create_item("Papad", "પાપડ", Decimal("20"), "Fryums")


@pytest.fixture
def bill(vendor, namkeen, fryums):
    """Bill with 2 x Sev and 1 x Papad."""
    return store.create_bill(
        vendor.id,
        date(2024, 5, 1),
        [{"item_id": namkeen.id, "quantity": 2}, {"item_id": fryums.id, "quantity": 1}],
    )
