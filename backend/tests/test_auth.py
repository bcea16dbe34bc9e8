"""
Account bootstrap and session tests.

Verifies:
- The first registered account becomes admin, later accounts get the user role
- Login, /me, logout and token invalidation
- Failed logins and role changes are written to security_events
- The last admin cannot be demoted
"""

from shopman.extensions import db
from shopman.models import SecurityEvent, User


def _register(client, email, password="Password123!", full_name=None):
    return client.post('/api/auth/register', json={
        'email': email, 'password': password, 'full_name': full_name,
    })


def _login(client, email, password="Password123!"):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


class TestRegistration:

    def test_first_account_becomes_admin(self, client):
        resp = _register(client, "first@shop.test", full_name="First")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["roles"] == ["admin"]
        assert "MANAGE_USERS" in body["permissions"]
        assert body["user"]["email"] == "first@shop.test"

    def test_later_accounts_get_user_role(self, client):
        _register(client, "first@shop.test")
        resp = _register(client, "second@shop.test")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["roles"] == ["user"]
        assert body["permissions"] == ["VIEW_OWN_PROFILE"]

    def test_email_is_normalized_and_unique(self, client):
        assert _register(client, "Owner@Shop.Test").status_code == 201
        resp = _register(client, "owner@shop.test")
        assert resp.status_code == 409
        assert db.session.query(User).count() == 1

    def test_weak_password_rejected(self, client):
        resp = _register(client, "weak@shop.test", password="short")
        assert resp.status_code == 400
        assert db.session.query(User).count() == 0

    def test_missing_fields_rejected(self, client):
        resp = client.post('/api/auth/register', json={'email': "x@shop.test"})
        assert resp.status_code == 400


class TestLoginAndSession:

    def test_login_returns_token_and_permissions(self, client):
        _register(client, "owner@shop.test")
        resp = _login(client, "owner@shop.test")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["token"]
        assert body["roles"] == ["admin"]

    def test_failed_login_is_logged(self, client):
        _register(client, "owner@shop.test")
        resp = _login(client, "owner@shop.test", password="WrongPass123!")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

        events = db.session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED").all()
        assert len(events) == 1
        assert events[0].success is False

    def test_me_and_profile_update(self, client, admin_headers):
        resp = client.get('/api/auth/me', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["full_name"] == "Shop Owner"

        resp = client.put('/api/auth/me', json={'full_name': "Renamed Owner"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["full_name"] == "Renamed Owner"

    def test_logout_invalidates_token(self, client, admin_headers):
        resp = client.post('/api/auth/logout', headers=admin_headers)
        assert resp.status_code == 200

        resp = client.get('/api/auth/me', headers=admin_headers)
        assert resp.status_code == 401


class TestRoleManagement:

    def _user_id(self, client, headers):
        return client.get('/api/auth/me', headers=headers).get_json()["user"]["id"]

    def test_promotion_revokes_target_sessions(self, client, admin_headers, user_headers):
        user_id = self._user_id(client, user_headers)

        resp = client.put(f'/api/admin/users/{user_id}/role', json={'role': 'admin'}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["roles"] == ["admin"]

        # Old token no longer works; a fresh login carries the new role
        assert client.get('/api/auth/me', headers=user_headers).status_code == 401
        login = _login(client, "clerk@shop.test").get_json()
        assert login["roles"] == ["admin"]

        assert db.session.query(SecurityEvent).filter_by(event_type="ROLE_ASSIGNED").count() == 1

    def test_last_admin_cannot_be_demoted(self, client, admin_headers):
        admin_id = self._user_id(client, admin_headers)
        resp = client.put(f'/api/admin/users/{admin_id}/role', json={'role': 'user'}, headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Cannot remove the last admin"

    def test_unknown_role_rejected(self, client, admin_headers, user_headers):
        user_id = self._user_id(client, user_headers)
        resp = client.put(f'/api/admin/users/{user_id}/role', json={'role': 'owner'}, headers=admin_headers)
        assert resp.status_code == 400

    def test_list_users_includes_roles(self, client, admin_headers, user_headers):
        resp = client.get('/api/admin/users', headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 2
        roles = {u["email"]: u["roles"] for u in body["users"]}
        assert roles == {"owner@shop.test": ["admin"], "clerk@shop.test": ["user"]}
