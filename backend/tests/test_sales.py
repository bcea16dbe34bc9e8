"""
Cart and checkout tests.

Verifies:
- Cart totals: subtotal + half-up tax at the stored shop rate
- Checkout stores the sale and its items under a SALE document number
- Credit sales open a credit for the sale total
- With CHECKOUT_DECREMENTS_STOCK on, stock and sale are written together or not at all
"""

import pytest

from shopman.extensions import db
from shopman.models import Credit, ProductVariant, Sale, SaleItem, StockLog
from shopman.services.cart import Cart, compute_tax_cents, compute_totals


class TestCartMath:

    def test_five_percent_tax(self):
        assert compute_totals([25000], 500) == {
            "subtotal_cents": 25000,
            "tax_cents": 1250,
            "total_cents": 26250,
        }

    def test_tax_rounds_half_up(self):
        # 1 cent at 50% is 0.5 cents
        assert compute_tax_cents(1, 5000) == 1
        assert compute_tax_cents(99, 500) == 5
        assert compute_tax_cents(0, 500) == 0

    def test_adding_same_product_merges_lines(self):
        cart = Cart()
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000, quantity=1)
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000, quantity=2)
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000, quantity=1, variant_id=7)
        assert len(cart.lines) == 2
        assert cart.subtotal_cents == 4000

    def test_zero_quantity_removes_line(self):
        cart = Cart()
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000)
        cart.set_quantity(1, 0)
        assert cart.is_empty

    def test_remove_item_keeps_other_lines(self):
        cart = Cart()
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000)
        cart.add_item(product_id=1, name="Tee", unit_price_cents=1000, variant_id=7)
        cart.add_item(product_id=2, name="Cap", unit_price_cents=500, quantity=2)

        cart.remove_item(1, variant_id=7)
        assert [line.key for line in cart.lines] == [(1, None), (2, None)]
        assert cart.totals(500)["total_cents"] == 2100

        with pytest.raises(KeyError):
            cart.remove_item(1, variant_id=7)

    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            Cart().add_item(product_id=1, name="Tee", unit_price_cents=1000, quantity=0)


def _checkout(client, headers, lines, **extra):
    payload = {"lines": lines}
    payload.update(extra)
    return client.post('/api/sales/checkout', json=payload, headers=headers)


class TestCartPreview:

    def test_preview_uses_stored_prices(self, client, admin_headers, make_product):
        product = make_product("JACKET", 25000)
        resp = client.post(
            '/api/sales/cart/preview',
            json={"lines": [{"product_id": product["id"], "quantity": 1, "unit_price_cents": 1}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["lines"][0]["unit_price_cents"] == 25000
        assert body["total_cents"] == 26250
        assert db.session.query(Sale).count() == 0


class TestCheckout:

    def test_cash_sale(self, client, admin_headers, make_product):
        jacket = make_product("JACKET", 25000)
        socks = make_product("SOCKS", 499)

        resp = _checkout(client, admin_headers, [
            {"product_id": jacket["id"], "quantity": 1},
            {"product_id": socks["id"], "quantity": 2},
        ], payment_method="card")
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]

        assert sale["sale_number"] == "SALE-000001"
        assert sale["subtotal_cents"] == 25998
        assert sale["tax_rate_bps"] == 500
        assert sale["tax_cents"] == 1300
        assert sale["total_cents"] == 27298
        assert sale["payment_method"] == "card"
        assert sale["payment_status"] == "paid"
        assert sale["customer_name"] == "Walk-in Customer"
        assert [(i["product_id"], i["quantity"], i["line_total_cents"]) for i in sale["items"]] == [
            (jacket["id"], 1, 25000),
            (socks["id"], 2, 998),
        ]

        second = _checkout(client, admin_headers, [{"product_id": socks["id"]}]).get_json()["sale"]
        assert second["sale_number"] == "SALE-000002"

    def test_repeated_lines_merge(self, client, admin_headers, make_product):
        socks = make_product("SOCKS", 500)
        resp = _checkout(client, admin_headers, [
            {"product_id": socks["id"], "quantity": 1},
            {"product_id": socks["id"], "quantity": 2},
        ])
        items = resp.get_json()["sale"]["items"]
        assert len(items) == 1
        assert items[0]["quantity"] == 3

    def test_tax_rate_comes_from_settings(self, client, admin_headers, make_product):
        product = make_product("JACKET", 25000)
        resp = client.put('/api/settings', json={"tax_rate_bps": 0}, headers=admin_headers)
        assert resp.status_code == 200

        sale = _checkout(client, admin_headers, [{"product_id": product["id"]}]).get_json()["sale"]
        assert sale["tax_cents"] == 0
        assert sale["total_cents"] == 25000

    def test_credit_sale_opens_credit(self, client, admin_headers, make_product):
        product = make_product("JACKET", 10000)
        resp = _checkout(
            client, admin_headers, [{"product_id": product["id"]}],
            payment_method="credit", customer_name="Dana", due_date="2030-01-31",
        )
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["payment_status"] == "pending"

        credit = db.session.query(Credit).filter_by(sale_id=sale["id"]).one()
        assert credit.amount_due_cents == 10500
        assert credit.amount_paid_cents == 0
        assert credit.status == "pending"
        assert credit.customer_name == "Dana"
        assert credit.due_date.isoformat() == "2030-01-31"

    def test_zero_total_credit_sale_rejected(self, client, admin_headers, make_product):
        freebie = make_product("FREEBIE", 0)
        resp = _checkout(client, admin_headers, [{"product_id": freebie["id"]}], payment_method="credit")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Credit sales must have a total above 0"
        assert db.session.query(Credit).count() == 0
        assert db.session.query(Sale).count() == 0

        # Paying cash for a free item is still a sale
        resp = _checkout(client, admin_headers, [{"product_id": freebie["id"]}])
        assert resp.status_code == 201
        assert resp.get_json()["sale"]["sale_number"] == "SALE-000001"

    @pytest.mark.parametrize(
        "payload,status",
        [
            ({"lines": []}, 400),
            ({"lines": [{"product_id": 999}]}, 400),
            ({"lines": [{"product_id": "abc"}]}, 400),
            ({"lines": [{"product_id": 1, "quantity": 0}]}, 400),
        ],
    )
    def test_invalid_carts(self, client, admin_headers, payload, status):
        resp = client.post('/api/sales/checkout', json=payload, headers=admin_headers)
        assert resp.status_code == status
        assert db.session.query(Sale).count() == 0

    def test_bad_payment_method(self, client, admin_headers, make_product):
        product = make_product("JACKET", 10000)
        resp = _checkout(client, admin_headers, [{"product_id": product["id"]}], payment_method="barter")
        assert resp.status_code == 400

    def test_stock_untouched_by_default(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE", 1000)
        variant = make_variant(product["id"], quantity=10)
        _checkout(client, admin_headers, [{"product_id": product["id"], "variant_id": variant["id"], "quantity": 3}])

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 10


class TestCheckoutDecrementsStock:

    @pytest.fixture(autouse=True)
    def _decrement_on(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "CHECKOUT_DECREMENTS_STOCK", True)

    def test_sale_takes_stock(self, client, admin_headers, make_product, make_variant):
        product = make_product("TEE", 1000)
        variant = make_variant(product["id"], quantity=10)

        resp = _checkout(client, admin_headers, [
            {"product_id": product["id"], "variant_id": variant["id"], "quantity": 3},
        ])
        assert resp.status_code == 201
        sale_number = resp.get_json()["sale"]["sale_number"]

        db.session.expire_all()
        assert db.session.get(ProductVariant, variant["id"]).quantity == 7
        log = db.session.query(StockLog).filter_by(type="sale").one()
        assert log.quantity == 3
        assert log.note == f"Sale {sale_number}"

    def test_insufficient_stock_writes_nothing(self, client, admin_headers, make_product, make_variant):
        tee = make_product("TEE", 1000)
        cap = make_product("CAP", 800)
        tee_variant = make_variant(tee["id"], quantity=10)
        cap_variant = make_variant(cap["id"], quantity=1)

        resp = _checkout(client, admin_headers, [
            {"product_id": tee["id"], "variant_id": tee_variant["id"], "quantity": 2},
            {"product_id": cap["id"], "variant_id": cap_variant["id"], "quantity": 5},
        ])
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Insufficient stock"
        assert body["details"]["available"] == 1

        db.session.expire_all()
        assert db.session.get(ProductVariant, tee_variant["id"]).quantity == 10
        assert db.session.get(ProductVariant, cap_variant["id"]).quantity == 1
        assert db.session.query(Sale).count() == 0
        assert db.session.query(SaleItem).count() == 0
        assert db.session.query(StockLog).filter_by(type="sale").count() == 0

        # The rolled-back sale did not consume a document number
        resp = _checkout(client, admin_headers, [
            {"product_id": tee["id"], "variant_id": tee_variant["id"], "quantity": 2},
        ])
        assert resp.get_json()["sale"]["sale_number"] == "SALE-000001"
