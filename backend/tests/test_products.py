"""
Catalog tests: products, categories, lookup, bulk edit and import.
"""

import pytest

from shopman.extensions import db
from shopman.models import Product
from shopman.services.bulk_edit_service import compute_adjusted_price


class TestProducts:

    def test_create_and_fetch(self, client, admin_headers, make_product):
        product = make_product("TEE-1", 2500, name="Basic Tee", barcode="4006381333931")
        assert product["price_cents"] == 2500

        resp = client.get(f'/api/products/{product["id"]}', headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["variants"] == []

    def test_duplicate_sku_conflicts(self, client, admin_headers, make_product):
        make_product("TEE-1", 2500)
        resp = client.post('/api/products', json={'sku': 'TEE-1', 'name': 'Other'}, headers=admin_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize(
        "payload",
        [
            {'name': 'No SKU'},
            {'sku': 'X', 'name': 'Neg', 'price_cents': -1},
            {'sku': 'X', 'name': 'Float', 'price_cents': 12.5},
            {'sku': 'X', 'name': 'Huge', 'price_cents': 1_000_000_000},
            {'sku': 'X', 'name': 'Extra', 'store_id': 1},
        ],
    )
    def test_invalid_payloads(self, client, admin_headers, payload):
        resp = client.post('/api/products', json=payload, headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.query(Product).count() == 0

    def test_lookup_by_sku_or_barcode(self, client, admin_headers, make_product):
        product = make_product("TEE-1", 2500, barcode="4006381333931")
        for code in ("TEE-1", "4006381333931"):
            resp = client.get(f'/api/products/lookup?code={code}', headers=admin_headers)
            assert resp.status_code == 200
            assert resp.get_json()["id"] == product["id"]

        assert client.get('/api/products/lookup?code=nope', headers=admin_headers).status_code == 404
        assert client.get('/api/products/lookup', headers=admin_headers).status_code == 400

    def test_search_and_pagination(self, client, admin_headers, make_product):
        for i in range(5):
            make_product(f"SKU-{i}", 100 * (i + 1), name=f"Widget {i}")
        make_product("OTHER", 100, name="Gadget")

        resp = client.get('/api/products?search=widget&page=1&per_page=2', headers=admin_headers)
        body = resp.get_json()
        assert body["count"] == 2
        assert body["pagination"]["total"] == 5
        assert body["pagination"]["has_next"] is True

    def test_update_and_delete(self, client, admin_headers, make_product):
        product = make_product("TEE-1", 2500)
        resp = client.put(f'/api/products/{product["id"]}', json={'price_cents': 3000}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["price_cents"] == 3000

        assert client.delete(f'/api/products/{product["id"]}', headers=admin_headers).status_code == 200
        assert client.get(f'/api/products/{product["id"]}', headers=admin_headers).status_code == 404


class TestCategories:

    def test_crud(self, client, admin_headers, make_product):
        resp = client.post('/api/categories', json={'name': 'Shirts'}, headers=admin_headers)
        assert resp.status_code == 201
        category = resp.get_json()

        assert client.post('/api/categories', json={'name': 'Shirts'}, headers=admin_headers).status_code == 409

        product = make_product("TEE-1", 2500, category_id=category["id"])
        assert product["category_name"] == "Shirts"

        filtered = client.get(f'/api/products?category_id={category["id"]}', headers=admin_headers).get_json()
        assert [p["id"] for p in filtered["items"]] == [product["id"]]


class TestBulkEdit:

    def test_percentage_math(self):
        assert compute_adjusted_price(10000, -30, "percentage") == 7000
        assert compute_adjusted_price(5000, -30, "percentage") == 3500
        assert compute_adjusted_price(2000, -30, "percentage") == 1400
        assert compute_adjusted_price(999, 10, "percentage") == 1099
        assert compute_adjusted_price(1000, -250, "amount") == 750

    def test_percentage_adjustment(self, client, admin_headers, make_product):
        ids = [make_product(f"P{i}", price)["id"] for i, price in enumerate((10000, 5000, 2000))]

        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': ids, 'mode': 'adjust', 'adjustment': -30, 'adjustment_type': 'percentage',
        }, headers=admin_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["updated"] == 3
        assert [p["price_cents"] for p in body["products"]] == [7000, 3500, 1400]

    def test_negative_result_changes_nothing(self, client, admin_headers, make_product):
        cheap = make_product("CHEAP", 1000)
        dear = make_product("DEAR", 100000)

        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': [cheap["id"], dear["id"]],
            'mode': 'adjust', 'adjustment': -150, 'adjustment_type': 'percentage',
        }, headers=admin_headers)
        assert resp.status_code == 400
        negative = resp.get_json()["details"]["products"]
        assert [p["product_id"] for p in negative] == [cheap["id"], dear["id"]]

        db.session.expire_all()
        prices = {p.sku: p.price_cents for p in db.session.query(Product).all()}
        assert prices == {"CHEAP": 1000, "DEAR": 100000}

    def test_one_negative_product_aborts_whole_batch(self, client, admin_headers, make_product):
        ids = [make_product(f"P{i}", price)["id"] for i, price in enumerate((10000, 5000, 2000, 1000))]

        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': ids, 'mode': 'adjust', 'adjustment': -1500, 'adjustment_type': 'amount',
        }, headers=admin_headers)
        assert resp.status_code == 400
        negative = resp.get_json()["details"]["products"]
        assert [(p["product_id"], p["new_price_cents"]) for p in negative] == [(ids[3], -500)]

        db.session.expire_all()
        prices = [db.session.get(Product, pid).price_cents for pid in ids]
        assert prices == [10000, 5000, 2000, 1000]

    @pytest.mark.parametrize(
        "adjustment,adjustment_type",
        [
            (1e30, 'percentage'),
            (10001, 'percentage'),
            (-1e30, 'amount'),
            ('Infinity', 'percentage'),
        ],
    )
    def test_out_of_range_adjustment(self, client, admin_headers, make_product, adjustment, adjustment_type):
        product = make_product("P1", 1000)
        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': [product["id"]], 'mode': 'adjust',
            'adjustment': adjustment, 'adjustment_type': adjustment_type,
        }, headers=admin_headers)
        assert resp.status_code == 400

        db.session.expire_all()
        assert db.session.get(Product, product["id"]).price_cents == 1000

    def test_largest_percentage_hits_price_ceiling(self, client, admin_headers, make_product):
        product = make_product("P1", 100_000_000)
        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': [product["id"]], 'mode': 'adjust', 'adjustment': 10000, 'adjustment_type': 'percentage',
        }, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"]["product_ids"] == [product["id"]]

    def test_set_price_and_category(self, client, admin_headers, make_product):
        category = client.post('/api/categories', json={'name': 'Sale'}, headers=admin_headers).get_json()
        ids = [make_product(f"P{i}", 100 * (i + 1))["id"] for i in range(3)]

        resp = client.post('/api/products/bulk-edit', json={
            'product_ids': ids, 'mode': 'set', 'price_cents': 999, 'category_id': category["id"],
        }, headers=admin_headers)
        assert resp.status_code == 200
        products = resp.get_json()["products"]
        assert {p["price_cents"] for p in products} == {999}
        assert {p["category_id"] for p in products} == {category["id"]}

    @pytest.mark.parametrize(
        "payload,status",
        [
            ({'product_ids': []}, 400),
            ({'product_ids': [1], 'mode': 'set'}, 400),
            ({'product_ids': [1], 'mode': 'set', 'price_cents': -5}, 400),
            ({'product_ids': [12345], 'mode': 'set', 'price_cents': 5}, 404),
        ],
    )
    def test_rejected_requests(self, client, admin_headers, payload, status):
        resp = client.post('/api/products/bulk-edit', json=payload, headers=admin_headers)
        assert resp.status_code == status


class TestImport:

    def test_dedup_counts(self, client, admin_headers, make_product):
        make_product("EXISTING", 100)

        rows = [
            {'name': 'Tee', 'sku': 'TEE', 'price': '19.99'},
            {'name': 'Tee again', 'sku': 'TEE', 'price': '9.99'},
            {'name': 'Old', 'sku': 'EXISTING', 'price': '1.00'},
            {'name': 'Cap', 'sku': 'CAP', 'price_cents': 1250, 'barcode': '123'},
            {'name': 'Refund', 'sku': 'NEG', 'price': '-1'},
            {'name': '', 'sku': 'BLANK'},
        ]
        resp = client.post('/api/products/import', json={'rows': rows}, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()

        assert body["imported"] == 2
        assert body["duplicates_in_file"] == 1
        assert body["skipped_existing"] == 1
        assert body["skipped_negative_price"] == 1
        assert body["invalid"] == [{"row": 6, "error": "name and sku are required"}]

        prices = {p["sku"]: p["price_cents"] for p in body["products"]}
        assert prices == {"TEE": 1999, "CAP": 1250}

    def test_huge_price_is_an_invalid_row(self, client, admin_headers):
        rows = [
            {'name': 'Valid', 'sku': 'A1', 'price': 10},
            {'name': 'Huge', 'sku': 'B1', 'price': '1e40'},
            {'name': 'Huge cents', 'sku': 'C1', 'price_cents': '1e999'},
            {'name': 'Huge refund', 'sku': 'D1', 'price': '-1e40'},
        ]
        resp = client.post('/api/products/import', json={'rows': rows}, headers=admin_headers)
        assert resp.status_code == 201
        body = resp.get_json()

        assert [p["sku"] for p in body["products"]] == ["A1"]
        assert body["products"][0]["price_cents"] == 1000
        assert [r["row"] for r in body["invalid"]] == [2, 3]
        assert body["skipped_negative_price"] == 1

    def test_long_fields_truncated(self, client, admin_headers):
        rows = [{'name': 'N' * 300, 'sku': 'S' * 80}]
        body = client.post('/api/products/import', json={'rows': rows}, headers=admin_headers).get_json()
        product = body["products"][0]
        assert len(product["name"]) == 200
        assert len(product["sku"]) == 50

    def test_nothing_importable(self, client, admin_headers):
        resp = client.post('/api/products/import', json={'rows': [{'name': 'x'}]}, headers=admin_headers)
        assert resp.status_code == 400
        resp = client.post('/api/products/import', json={'rows': []}, headers=admin_headers)
        assert resp.status_code == 400
