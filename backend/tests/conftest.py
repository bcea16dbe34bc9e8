"""
Pytest fixtures for ShopManager backend tests.

Provides an in-memory application, per-test table wipes, the two bootstrap
accounts (first = admin, second = user) and small API helpers.
"""

import pytest

from shopman import create_app
from shopman.extensions import db


ADMIN_EMAIL = "owner@shop.test"
USER_EMAIL = "clerk@shop.test"
PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CHECKOUT_DECREMENTS_STOCK': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(autouse=True)
def db_session(app):
    """Fresh tables for each test."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.expire_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def register(client, email: str, password: str = PASSWORD, full_name: str | None = None):
    return client.post('/api/auth/register', json={
        'email': email,
        'password': password,
        'full_name': full_name,
    })


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client):
    """First registered account; becomes admin."""
    resp = register(client, ADMIN_EMAIL, full_name="Shop Owner")
    assert resp.status_code == 201, resp.get_json()
    return auth_headers(get_auth_token(client, ADMIN_EMAIL))


@pytest.fixture
def user_headers(client, admin_headers):
    """Second registered account; gets the user role."""
    resp = register(client, USER_EMAIL, full_name="Shop Clerk")
    assert resp.status_code == 201, resp.get_json()
    return auth_headers(get_auth_token(client, USER_EMAIL))


@pytest.fixture
def make_product(client, admin_headers):
    """Create a product through the API and return its JSON."""
    def _make(sku: str, price_cents: int, name: str | None = None, **extra):
        payload = {'sku': sku, 'name': name or f"Product {sku}", 'price_cents': price_cents}
        payload.update(extra)
        resp = client.post('/api/products', json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _make


@pytest.fixture
def make_variant(client, admin_headers):
    """Create a variant for a product and return its JSON."""
    def _make(product_id: int, quantity: int = 0, size: str | None = None, color: str | None = None, min_quantity: int = 5):
        resp = client.post(
            f'/api/inventory/products/{product_id}/variants',
            json={'size': size, 'color': color, 'quantity': quantity, 'min_quantity': min_quantity},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _make
