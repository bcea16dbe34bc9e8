"""
Customers, expenses, shop settings and CLI tests.
"""

import pytest

from shopman.extensions import db
from shopman.models import Role, User


class TestCustomers:

    def _create(self, client, headers, **fields):
        payload = {'name': 'Dana Reyes', 'phone': '+1 555 0199'}
        payload.update(fields)
        return client.post('/api/customers', json=payload, headers=headers)

    def test_name_and_phone_required(self, client, admin_headers):
        assert client.post('/api/customers', json={'name': 'No Phone'}, headers=admin_headers).status_code == 400
        assert client.post('/api/customers', json={'phone': '123'}, headers=admin_headers).status_code == 400

    def test_crud_and_search(self, client, admin_headers):
        customer = self._create(client, admin_headers, email='dana@example.test').get_json()

        resp = client.put(f'/api/customers/{customer["id"]}', json={'address': '1 Main St'}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["address"] == '1 Main St'

        found = client.get('/api/customers?search=reyes', headers=admin_headers).get_json()
        assert [c["id"] for c in found["items"]] == [customer["id"]]

        assert client.delete(f'/api/customers/{customer["id"]}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/customers/{customer["id"]}', headers=admin_headers).status_code == 404

    def test_purchase_history(self, client, admin_headers, make_product):
        customer = self._create(client, admin_headers).get_json()
        product = make_product("TEE", 1000)

        for quantity in (1, 2):
            resp = client.post('/api/sales/checkout', json={
                'lines': [{'product_id': product["id"], 'quantity': quantity}],
                'customer_id': customer["id"],
            }, headers=admin_headers)
            assert resp.status_code == 201
            assert resp.get_json()["sale"]["customer_name"] == 'Dana Reyes'

        # A walk-in sale is not part of the history
        client.post('/api/sales/checkout', json={'lines': [{'product_id': product["id"]}]}, headers=admin_headers)

        history = client.get(f'/api/customers/{customer["id"]}/purchases', headers=admin_headers).get_json()
        assert history["count"] == 2
        assert history["total_spent_cents"] == 1050 + 2100
        assert history["sales"][0]["sale_number"] == "SALE-000002"
        assert history["sales"][0]["items"][0]["quantity"] == 2

    def test_unknown_customer_at_checkout(self, client, admin_headers, make_product):
        product = make_product("TEE", 1000)
        resp = client.post('/api/sales/checkout', json={
            'lines': [{'product_id': product["id"]}], 'customer_id': 999,
        }, headers=admin_headers)
        assert resp.status_code == 404


class TestExpenses:

    def test_crud_filters_and_total(self, client, admin_headers):
        rows = [
            {'category': 'Rent', 'amount_cents': 120000, 'expense_date': '2026-01-01'},
            {'category': 'Utilities', 'amount_cents': 8500, 'expense_date': '2026-01-15', 'notes': 'Power'},
            {'category': 'Rent', 'amount_cents': 120000, 'expense_date': '2026-02-01'},
        ]
        created = []
        for row in rows:
            resp = client.post('/api/expenses', json=row, headers=admin_headers)
            assert resp.status_code == 201
            created.append(resp.get_json())

        january = client.get('/api/expenses?date_from=2026-01-01&date_to=2026-01-31', headers=admin_headers).get_json()
        assert january["count"] == 2
        assert january["total_cents"] == 128500

        rent = client.get('/api/expenses?category=Rent', headers=admin_headers).get_json()
        assert [e["expense_date"] for e in rent["items"]] == ['2026-02-01', '2026-01-01']

        resp = client.put(f'/api/expenses/{created[1]["id"]}', json={'amount_cents': 9000}, headers=admin_headers)
        assert resp.get_json()["amount_cents"] == 9000

        assert client.delete(f'/api/expenses/{created[0]["id"]}', headers=admin_headers).status_code == 200
        assert client.get('/api/expenses', headers=admin_headers).get_json()["count"] == 2

    def test_date_defaults_to_today(self, client, admin_headers):
        resp = client.post('/api/expenses', json={'category': 'Misc', 'amount_cents': 100}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.get_json()["expense_date"] is not None

    @pytest.mark.parametrize(
        "payload",
        [
            {'amount_cents': 100},
            {'category': 'Misc'},
            {'category': 'Misc', 'amount_cents': -1},
            {'category': 'Misc', 'amount_cents': 100, 'expense_date': '31/01/2026'},
        ],
    )
    def test_invalid(self, client, admin_headers, payload):
        assert client.post('/api/expenses', json=payload, headers=admin_headers).status_code == 400


class TestSettings:

    def test_defaults_and_update(self, client, admin_headers):
        settings = client.get('/api/settings', headers=admin_headers).get_json()
        assert settings["shop_name"] == "ShopManager"
        assert settings["tax_rate_bps"] == 500

        resp = client.put('/api/settings', json={'shop_name': 'Corner Shop', 'tax_rate_bps': 825}, headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert (body["shop_name"], body["tax_rate_bps"]) == ('Corner Shop', 825)

    @pytest.mark.parametrize("rate", [-1, 10001, 12.5])
    def test_tax_rate_bounds(self, client, admin_headers, rate):
        resp = client.put('/api/settings', json={'tax_rate_bps': rate}, headers=admin_headers)
        assert resp.status_code == 400
        assert client.get('/api/settings', headers=admin_headers).get_json()["tax_rate_bps"] == 500


class TestCli:

    def test_init_then_create_users(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['system', 'init'])
        assert result.exit_code == 0
        assert db.session.query(Role).count() == 2

        result = runner.invoke(args=['users', 'create', '--email', 'owner@shop.test', '--password', 'Password123!'])
        assert 'PASS' in result.output
        result = runner.invoke(args=['users', 'create', '--email', 'clerk@shop.test', '--password', 'Password123!'])
        assert 'with role(s) user' in result.output

        result = runner.invoke(args=['perms', 'check', 'clerk@shop.test', 'MANAGE_PRODUCTS'])
        assert 'DOES NOT HAVE' in result.output

        result = runner.invoke(args=['users', 'set-role', 'clerk@shop.test', 'admin'])
        assert 'PASS' in result.output
        result = runner.invoke(args=['perms', 'check', 'clerk@shop.test', 'MANAGE_PRODUCTS'])
        assert 'HAS permission' in result.output
        assert db.session.query(User).count() == 2

    def test_grant_and_revoke(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=['system', 'init'])

        result = runner.invoke(args=['perms', 'grant', 'user', 'VIEW_PRODUCTS'])
        assert 'PASS' in result.output
        result = runner.invoke(args=['perms', 'list', '--role', 'user'])
        assert 'VIEW_PRODUCTS' in result.output

        result = runner.invoke(args=['perms', 'revoke', 'user', 'VIEW_PRODUCTS'])
        assert 'PASS' in result.output
        result = runner.invoke(args=['perms', 'grant', 'user', 'NOT_A_PERMISSION'])
        assert 'FAIL' in result.output
