"""
Supplier and purchase order tests.

Verifies:
- PO totals are quantity x cost summed over items
- Receiving restocks variants with "in" logs and can happen once
- Only pending orders can be cancelled; "received" only via receive
"""

import pytest

from shopman.extensions import db
from shopman.models import ProductVariant, StockLog


@pytest.fixture
def supplier(client, admin_headers):
    resp = client.post('/api/suppliers', json={
        'name': 'Acme Textiles', 'contact_phone': '+1 555 0100', 'company': 'Acme',
    }, headers=admin_headers)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _create_po(client, headers, supplier_id, items, **extra):
    payload = {'supplier_id': supplier_id, 'items': items}
    payload.update(extra)
    return client.post('/api/purchase-orders', json=payload, headers=headers)


class TestSuppliers:

    def test_phone_required(self, client, admin_headers):
        resp = client.post('/api/suppliers', json={'name': 'No Phone'}, headers=admin_headers)
        assert resp.status_code == 400

    def test_update_and_list(self, client, admin_headers, supplier):
        resp = client.put(f'/api/suppliers/{supplier["id"]}', json={'contact_email': 'orders@acme.test'},
                          headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["contact_email"] == 'orders@acme.test'

        listing = client.get('/api/suppliers?search=acme', headers=admin_headers).get_json()
        assert [s["id"] for s in listing["items"]] == [supplier["id"]]


class TestPurchaseOrders:

    def test_create_totals_and_number(self, client, admin_headers, supplier, make_product, make_variant):
        tee = make_product("TEE", 2500, name="Basic Tee")
        variant = make_variant(tee["id"], quantity=0, size="M")

        resp = _create_po(client, admin_headers, supplier["id"], [
            {'product_id': tee["id"], 'variant_id': variant["id"], 'quantity': 10, 'cost_cents': 900},
            {'product_id': tee["id"], 'quantity': 2, 'cost_cents': 450, 'item_name': 'Sample pack'},
        ], order_date="2026-03-01")
        assert resp.status_code == 201
        po = resp.get_json()["purchase_order"]

        assert po["po_number"] == "PO-000001"
        assert po["status"] == "pending"
        assert po["payment_status"] == "pending"
        assert po["order_date"] == "2026-03-01"
        assert po["total_cents"] == 9900
        assert [i["item_name"] for i in po["items"]] == ["Basic Tee", "Sample pack"]

        orders = client.get(f'/api/suppliers/{supplier["id"]}/purchase-orders', headers=admin_headers).get_json()
        assert orders["count"] == 1

    def test_receive_restocks_once(self, client, admin_headers, supplier, make_product, make_variant):
        tee = make_product("TEE", 2500)
        variant = make_variant(tee["id"], quantity=3)
        po = _create_po(client, admin_headers, supplier["id"], [
            {'product_id': tee["id"], 'variant_id': variant["id"], 'quantity': 10, 'cost_cents': 900},
        ]).get_json()["purchase_order"]

        # Creating the order changes no stock
        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 3

        resp = client.post(f'/api/purchase-orders/{po["id"]}/receive', headers=admin_headers)
        assert resp.status_code == 200
        received = resp.get_json()["purchase_order"]
        assert received["status"] == "received"
        assert received["received_at"] is not None

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 13
        log = db.session.query(StockLog).filter_by(note="Purchase order PO-000001").one()
        assert (log.type, log.quantity) == ("in", 10)

        resp = client.post(f'/api/purchase-orders/{po["id"]}/receive', headers=admin_headers)
        assert resp.status_code == 409
        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 13

    def test_status_rules(self, client, admin_headers, supplier, make_product):
        tee = make_product("TEE", 2500)
        po = _create_po(client, admin_headers, supplier["id"], [
            {'product_id': tee["id"], 'quantity': 1, 'cost_cents': 100},
        ]).get_json()["purchase_order"]

        resp = client.put(f'/api/purchase-orders/{po["id"]}', json={'status': 'received'}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put(f'/api/purchase-orders/{po["id"]}', json={'payment_status': 'partial'}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["purchase_order"]["payment_status"] == "partial"

        resp = client.put(f'/api/purchase-orders/{po["id"]}', json={'status': 'cancelled'}, headers=admin_headers)
        assert resp.get_json()["purchase_order"]["status"] == "cancelled"

        assert client.post(f'/api/purchase-orders/{po["id"]}/receive', headers=admin_headers).status_code == 409
        resp = client.put(f'/api/purchase-orders/{po["id"]}', json={'status': 'pending'}, headers=admin_headers)
        assert resp.status_code == 409

        assert client.put(f'/api/purchase-orders/{po["id"]}', json={}, headers=admin_headers).status_code == 400

    @pytest.mark.parametrize(
        "items",
        [
            [],
            [{'product_id': 1, 'quantity': 0, 'cost_cents': 1}],
            [{'product_id': 1, 'quantity': 1, 'cost_cents': -1}],
        ],
    )
    def test_invalid_items(self, client, admin_headers, supplier, items):
        assert _create_po(client, admin_headers, supplier["id"], items).status_code == 400

    def test_unknown_supplier(self, client, admin_headers, make_product):
        tee = make_product("TEE", 2500)
        resp = _create_po(client, admin_headers, 999, [{'product_id': tee["id"], 'quantity': 1}])
        assert resp.status_code == 404

    def test_delete(self, client, admin_headers, supplier, make_product):
        tee = make_product("TEE", 2500)
        po = _create_po(client, admin_headers, supplier["id"], [
            {'product_id': tee["id"], 'quantity': 1},
        ]).get_json()["purchase_order"]
        assert po["total_cents"] == 0

        assert client.delete(f'/api/purchase-orders/{po["id"]}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/purchase-orders/{po["id"]}', headers=admin_headers).status_code == 404
