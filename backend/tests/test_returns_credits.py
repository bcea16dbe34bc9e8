"""
Returns and customer credit tests.

Verifies:
- Returns: pending -> processed restocks variants and logs "return";
  pending -> rejected changes no stock; settled returns cannot change again
- Credits: partial then full payment, overpayment rejected, sale payment status follows
- Overdue marking only touches unpaid credits past their due date
"""

from datetime import date

from shopman.extensions import db
from shopman.models import Credit, ProductVariant, Sale, StockLog
from shopman.services import credit_service


class TestReturns:

    def _create(self, client, headers, items, refund=1000, **extra):
        payload = {'items': items, 'refund_amount_cents': refund}
        payload.update(extra)
        return client.post('/api/returns', json=payload, headers=headers)

    def test_process_restocks(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE", 1000)
        variant = make_variant(product["id"], quantity=2)

        resp = self._create(client, admin_headers, [
            {'product_id': product["id"], 'variant_id': variant["id"], 'quantity': 3},
        ], reason="Wrong size")
        assert resp.status_code == 201
        doc = resp.get_json()["return"]
        assert doc["return_number"] == "RET-000001"
        assert doc["status"] == "pending"

        # Creating a return changes no stock
        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 2

        resp = client.post(f'/api/returns/{doc["id"]}/process', headers=admin_headers)
        assert resp.status_code == 200
        processed = resp.get_json()["return"]
        assert processed["status"] == "processed"
        assert processed["processed_at"] is not None

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 5
        log = db.session.query(StockLog).filter_by(type="return").one()
        assert log.quantity == 3
        assert log.note == "Return RET-000001"

    def test_process_twice_conflicts(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE", 1000)
        variant = make_variant(product["id"], quantity=0)
        doc = self._create(client, admin_headers, [
            {'product_id': product["id"], 'variant_id': variant["id"], 'quantity': 1},
        ]).get_json()["return"]

        assert client.post(f'/api/returns/{doc["id"]}/process', headers=admin_headers).status_code == 200
        resp = client.post(f'/api/returns/{doc["id"]}/process', headers=admin_headers)
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Return is already processed"

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 1

    def test_reject_leaves_stock(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE", 1000)
        variant = make_variant(product["id"], quantity=4)
        doc = self._create(client, admin_headers, [
            {'product_id': product["id"], 'variant_id': variant["id"], 'quantity': 1},
        ]).get_json()["return"]

        resp = client.post(f'/api/returns/{doc["id"]}/reject', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["return"]["status"] == "rejected"
        assert client.post(f'/api/returns/{doc["id"]}/process', headers=admin_headers).status_code == 409

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 4
        assert db.session.query(StockLog).filter_by(type="return").count() == 0

    def test_linked_to_sale(self, client, admin_headers, make_product):
        product = make_product("TEE", 1000)
        sale = client.post('/api/sales/checkout', json={'lines': [{'product_id': product["id"]}]},
                           headers=admin_headers).get_json()["sale"]

        doc = self._create(client, admin_headers, [{'product_id': product["id"], 'quantity': 1}],
                           sale_id=sale["id"]).get_json()["return"]
        assert doc["sale_number"] == sale["sale_number"]

        listing = client.get('/api/returns?status=pending', headers=admin_headers).get_json()
        assert [r["id"] for r in listing["items"]] == [doc["id"]]

    def test_invalid_returns(self, client, admin_headers, make_product):
        product = make_product("TEE", 1000)
        assert self._create(client, admin_headers, []).status_code == 400
        assert self._create(client, admin_headers, [{'product_id': product["id"], 'quantity': 0}]).status_code == 400
        assert self._create(client, admin_headers, [{'product_id': product["id"], 'quantity': 1}],
                            refund=-1).status_code == 400
        assert self._create(client, admin_headers, [{'product_id': 999, 'quantity': 1}]).status_code == 404


class TestCredits:

    def _credit_sale(self, client, headers, product_id, **extra):
        payload = {'lines': [{'product_id': product_id}], 'payment_method': 'credit', 'customer_name': 'Dana'}
        payload.update(extra)
        sale = client.post('/api/sales/checkout', json=payload, headers=headers).get_json()["sale"]
        credit = db.session.query(Credit).filter_by(sale_id=sale["id"]).one()
        return sale, credit.id

    def _pay(self, client, headers, credit_id, amount):
        return client.post(f'/api/credits/{credit_id}/payments', json={'amount_cents': amount}, headers=headers)

    def test_partial_then_full_payment(self, client, admin_headers, make_product):
        product = make_product("TV", 20000)
        sale, credit_id = self._credit_sale(client, admin_headers, product["id"])  # 21000 due

        resp = self._pay(client, admin_headers, credit_id, 5000)
        assert resp.status_code == 200
        credit = resp.get_json()["credit"]
        assert credit["amount_paid_cents"] == 5000
        assert credit["outstanding_cents"] == 16000
        assert credit["status"] == "pending"
        sale_status = client.get(f'/api/sales/{sale["id"]}', headers=admin_headers).get_json()["sale"]["payment_status"]
        assert sale_status == "partial"

        resp = self._pay(client, admin_headers, credit_id, 16000)
        credit = resp.get_json()["credit"]
        assert credit["status"] == "paid"
        assert credit["outstanding_cents"] == 0
        sale_status = client.get(f'/api/sales/{sale["id"]}', headers=admin_headers).get_json()["sale"]["payment_status"]
        assert sale_status == "paid"

        assert self._pay(client, admin_headers, credit_id, 1).status_code == 409

    def test_overpayment_rejected(self, client, admin_headers, make_product):
        product = make_product("TV", 20000)
        _, credit_id = self._credit_sale(client, admin_headers, product["id"])

        resp = self._pay(client, admin_headers, credit_id, 21001)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Payment exceeds outstanding balance of 21000 cents"

        db.session.expire_all()
        assert db.session.get(Credit, credit_id).amount_paid_cents == 0

    def test_invalid_amounts(self, client, admin_headers, make_product):
        product = make_product("TV", 20000)
        _, credit_id = self._credit_sale(client, admin_headers, product["id"])
        for amount in (0, -5, "100", 1.5):
            assert self._pay(client, admin_headers, credit_id, amount).status_code == 400
        assert self._pay(client, admin_headers, 999, 100).status_code == 404

    def test_mark_overdue(self, app, client, admin_headers, make_product):
        product = make_product("TV", 20000)
        _, late_id = self._credit_sale(client, admin_headers, product["id"], due_date="2020-01-01")
        _, future_id = self._credit_sale(client, admin_headers, product["id"], due_date="2999-01-01")
        _, open_id = self._credit_sale(client, admin_headers, product["id"])

        assert credit_service.mark_overdue(today=date(2024, 6, 1)) == 1

        db.session.expire_all()
        assert db.session.get(Credit, late_id).status == "overdue"
        assert db.session.get(Credit, future_id).status == "pending"
        assert db.session.get(Credit, open_id).status == "pending"

        # Overdue credits still accept payment
        resp = self._pay(client, admin_headers, late_id, 21000)
        assert resp.get_json()["credit"]["status"] == "paid"

        listing = client.get('/api/credits?status=paid', headers=admin_headers).get_json()
        assert [c["id"] for c in listing["items"]] == [late_id]

    def test_sales_filter_by_payment_status(self, client, admin_headers, make_product):
        product = make_product("TV", 20000)
        self._credit_sale(client, admin_headers, product["id"])
        client.post('/api/sales/checkout', json={'lines': [{'product_id': product["id"]}]}, headers=admin_headers)

        pending = client.get('/api/sales?payment_status=pending', headers=admin_headers).get_json()
        assert pending["count"] == 1
        assert db.session.query(Sale).count() == 2
