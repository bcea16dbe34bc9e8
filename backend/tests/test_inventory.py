"""
Variant stock tests.

Verifies:
- add/remove/set math and the no-negative rule
- Every adjustment writes exactly one stock log in the same transaction
- A rejected adjustment writes nothing
- Stock levels report low / out-of-stock status
"""

import pytest

from shopman.extensions import db
from shopman.models import ProductVariant, StockLog
from shopman.services.inventory_service import (
    StockAdjustmentError,
    compute_new_quantity,
    stock_status,
)
from shopman.validation import ValidationError


class TestStockMath:

    def test_add_remove_set(self):
        assert compute_new_quantity(10, "add", 5) == 15
        assert compute_new_quantity(10, "remove", 4) == 6
        assert compute_new_quantity(10, "set", 3) == 3
        assert compute_new_quantity(10, "remove", 10) == 0

    def test_remove_below_zero_rejected(self):
        with pytest.raises(StockAdjustmentError) as exc:
            compute_new_quantity(10, "remove", 12)
        assert exc.value.details["current_quantity"] == 10

    @pytest.mark.parametrize("operation,value", [("explode", 1), ("add", -1), ("add", 1.5), ("set", True)])
    def test_bad_input(self, operation, value):
        with pytest.raises(ValidationError):
            compute_new_quantity(10, operation, value)

    def test_stock_status(self):
        assert stock_status(0, 5) == "out_of_stock"
        assert stock_status(5, 5) == "low_stock"
        assert stock_status(6, 5) == "in_stock"


class TestAdjustEndpoint:

    def _adjust(self, client, headers, variant_id, operation, quantity, note=None):
        return client.post(
            f'/api/inventory/variants/{variant_id}/adjust',
            json={'operation': operation, 'quantity': quantity, 'note': note},
            headers=headers,
        )

    def test_opening_stock_is_logged(self, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        variant = make_variant(product["id"], quantity=10, size="M", color="Red")

        assert variant["quantity"] == 10
        assert variant["label"] == "M / Red"
        logs = db.session.query(StockLog).filter_by(variant_id=variant["id"]).all()
        assert [(log.type, log.quantity) for log in logs] == [("in", 10)]

    def test_remove_more_than_on_hand_writes_nothing(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        variant = make_variant(product["id"], quantity=10)

        resp = self._adjust(client, admin_headers, variant["id"], "remove", 12)
        assert resp.status_code == 400
        assert resp.get_json()["details"]["current_quantity"] == 10

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 10
        assert db.session.query(StockLog).filter_by(variant_id=variant["id"]).count() == 1

    def test_each_operation_logs_once(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        variant = make_variant(product["id"], quantity=10)

        resp = self._adjust(client, admin_headers, variant["id"], "add", 5, note="Delivery")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["variant"]["quantity"] == 15
        assert body["stock_log"]["type"] == "adjustment_in"
        assert body["stock_log"]["quantity"] == 5
        assert body["stock_log"]["note"] == "Delivery"

        resp = self._adjust(client, admin_headers, variant["id"], "remove", 3)
        assert resp.get_json()["variant"]["quantity"] == 12
        assert resp.get_json()["stock_log"]["type"] == "adjustment_out"

        resp = self._adjust(client, admin_headers, variant["id"], "set", 4)
        body = resp.get_json()
        assert body["variant"]["quantity"] == 4
        assert body["stock_log"]["type"] == "adjustment_set"
        assert body["stock_log"]["quantity"] == 4

        history = client.get(
            f'/api/inventory/history?variant_id={variant["id"]}', headers=admin_headers
        ).get_json()
        assert [item["type"] for item in history["items"]] == [
            "adjustment_set", "adjustment_out", "adjustment_in", "in",
        ]

    def test_missing_fields(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        variant = make_variant(product["id"], quantity=1)
        resp = client.post(
            f'/api/inventory/variants/{variant["id"]}/adjust', json={'operation': 'add'}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_unknown_variant(self, client, admin_headers):
        resp = self._adjust(client, admin_headers, 999, "add", 1)
        assert resp.status_code == 404


class TestVariants:

    def test_duplicate_size_color_conflicts(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        make_variant(product["id"], size="M", color="Red")
        resp = client.post(
            f'/api/inventory/products/{product["id"]}/variants',
            json={'size': 'M', 'color': 'Red'},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_quantity_not_editable_directly(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500)
        variant = make_variant(product["id"], quantity=3)
        resp = client.put(
            f'/api/inventory/variants/{variant["id"]}', json={'quantity': 50}, headers=admin_headers
        )
        assert resp.status_code == 400

        resp = client.put(
            f'/api/inventory/variants/{variant["id"]}', json={'min_quantity': 1}, headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.get_json()["min_quantity"] == 1

    def test_levels_and_low_stock(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE-1", 2500, name="Tee")
        make_variant(product["id"], quantity=0, size="S")
        make_variant(product["id"], quantity=3, size="M")
        make_variant(product["id"], quantity=20, size="L")

        levels = client.get('/api/inventory/levels', headers=admin_headers).get_json()
        assert levels["summary"] == {
            "total_variants": 3,
            "low_stock": 2,
            "out_of_stock": 1,
            "total_units": 23,
        }

        low = client.get('/api/inventory/levels?low_stock_only=true', headers=admin_headers).get_json()
        assert sorted(item["status"] for item in low["items"]) == ["low_stock", "out_of_stock"]
