"""
Authorization tests.

Verifies:
- Protected endpoints return 401 without a token
- The user role is denied shop operations (403) and denials are logged
- The admin role can perform them
"""

import pytest

from shopman.extensions import db
from shopman.models import SecurityEvent


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/admin/permissions"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/categories"),
            ("GET", "/api/inventory/levels"),
            ("POST", "/api/inventory/variants/1/adjust"),
            ("POST", "/api/sales/checkout"),
            ("GET", "/api/sales"),
            ("GET", "/api/returns"),
            ("GET", "/api/credits"),
            ("GET", "/api/customers"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/purchase-orders"),
            ("GET", "/api/expenses"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401


# =============================================================================
# USER ROLE DENIED SHOP OPERATIONS (403)
# =============================================================================


class TestUserRoleDenied:
    """The user role only reaches its own profile."""

    @pytest.mark.parametrize(
        "method,path,permission",
        [
            ("GET", "/api/products", "VIEW_PRODUCTS"),
            ("POST", "/api/products", "MANAGE_PRODUCTS"),
            ("POST", "/api/products/import", "IMPORT_PRODUCTS"),
            ("GET", "/api/inventory/levels", "VIEW_INVENTORY"),
            ("POST", "/api/sales/checkout", "CREATE_SALE"),
            ("GET", "/api/sales", "VIEW_SALES"),
            ("GET", "/api/credits", "MANAGE_CREDITS"),
            ("GET", "/api/customers", "VIEW_CUSTOMERS"),
            ("POST", "/api/purchase-orders", "MANAGE_PURCHASE_ORDERS"),
            ("GET", "/api/expenses", "MANAGE_EXPENSES"),
            ("PUT", "/api/settings", "MANAGE_SETTINGS"),
            ("GET", "/api/admin/users", "MANAGE_USERS"),
        ],
    )
    def test_denied(self, client, user_headers, method, path, permission):
        resp = getattr(client, method.lower())(path, json={}, headers=user_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == permission

    def test_denial_is_logged(self, client, user_headers):
        client.get("/api/products", headers=user_headers)
        events = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").all()
        assert len(events) == 1
        assert events[0].action == "VIEW_PRODUCTS"
        assert events[0].resource == "/api/products"

    def test_user_can_read_own_profile_and_settings(self, client, user_headers):
        assert client.get("/api/auth/me", headers=user_headers).status_code == 200
        assert client.get("/api/settings", headers=user_headers).status_code == 200


class TestAdminAllowed:

    def test_admin_reaches_shop_endpoints(self, client, admin_headers):
        for path in ("/api/products", "/api/sales", "/api/credits", "/api/expenses", "/api/admin/users"):
            assert client.get(path, headers=admin_headers).status_code == 200, path

    def test_permission_catalog(self, client, admin_headers):
        resp = client.get("/api/admin/permissions", headers=admin_headers)
        assert resp.status_code == 200
        categories = resp.get_json()["categories"]
        codes = {p["code"] for perms in categories.values() for p in perms}
        view_products = next(p for p in categories["CATALOG"] if p["code"] == "VIEW_PRODUCTS")
        assert view_products["roles"] == ["admin"]
        assert {"VIEW_PRODUCTS", "CREATE_SALE", "MANAGE_USERS"} <= codes


def test_health_reports_seed_state(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "degraded"

    client.post("/api/auth/register", json={"email": "owner@shop.test", "password": "Password123!"})
    resp = client.get("/api/health")
    assert resp.get_json()["status"] == "healthy"
