"""
Pytest fixtures for gebeyanet backend tests.

Provides an in-memory database, two shop owners, a test client and
helpers for authenticated requests.
"""

from datetime import datetime

import pytest
from gebeyanet import create_app
from gebeyanet.extensions import db
from gebeyanet.services import inventory_service
from gebeyanet.services.auth_service import create_user
from gebeyanet.services.session_service import create_session


PASSWORD = "Password123!"

# Fixed reference instant for expiry arithmetic
NOW = datetime(2026, 3, 10, 9, 30, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'RETRY_ATTEMPTS': 2,
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
def owner(db_session):
    """Shop owner A."""
    return create_user("shop_a", "shop_a@example.com", PASSWORD, business_name="Shop A")


@pytest.fixture(scope='function')
def other_owner(db_session):
    """Shop owner B, used to prove owner scoping."""
    return create_user("shop_b", "shop_b@example.com", PASSWORD, business_name="Shop B")


@pytest.fixture(scope='function')
def token(owner):
    _, plaintext = create_session(owner.id)
    return plaintext


@pytest.fixture(scope='function')
def headers(token):
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_item(owner):
    """Factory for items owned by `owner` (override with owner_id=...)."""
    def _make(name="Milk 1L", *, owner_id=None, **fields):
        data = {
            "name": name,
            "cost_price_cents": 2000,
            "selling_price_cents": 2500,
            "quantity": 10,
        }
        data.update(fields)
        return inventory_service.add_item(owner_id or owner.id, data)
    return _make


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
