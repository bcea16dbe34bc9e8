# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Point-of-Sale Checkout

A checkout turns a cart into one Sale header plus its SaleItems inside a
single transaction: either the whole sale is stored or nothing is.

- Unit prices come from the stored product, never from the client.
- Tax uses the stored shop settings rate at checkout time.
- Sale numbers come from the SALE document sequence (SALE-000001, ...).
- "credit" sales are stored with payment_status "pending" and open a Credit
  for the sale total; cash and card sales are "paid".
- With CHECKOUT_DECREMENTS_STOCK enabled, lines that name a variant take
  their quantity out of that variant and write a "sale" stock log in the same
  transaction. Insufficient stock rejects the whole checkout.
"""
from __future__ import annotations

from datetime import datetime, time

from flask import current_app

from ..extensions import db
from ..models import Customer, Credit, Product, ProductVariant, Sale, SaleItem
from ..validation import NotFoundError, ValidationError, parse_iso_date
from . import document_service, settings_service
from .cart import Cart
from .concurrency import run_with_retry
from .inventory_service import StockAdjustmentError, apply_stock_movement, lock_variant
from .pagination import paginate

PAYMENT_METHODS = ("cash", "card", "credit")
WALK_IN_CUSTOMER = "Walk-in Customer"


class CheckoutError(Exception):
    """Raised for checkout errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_lines(lines) -> list[dict]:
    if not isinstance(lines, list) or not lines:
        raise CheckoutError("Cart is empty")

    parsed = []
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise CheckoutError("Invalid cart line", details={"line": index})

        product_id = raw.get("product_id")
        quantity = raw.get("quantity", 1)
        variant_id = raw.get("variant_id")

        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise CheckoutError("product_id must be an integer", details={"line": index})
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise CheckoutError("quantity must be a positive integer", details={"line": index})
        if variant_id is not None and (isinstance(variant_id, bool) or not isinstance(variant_id, int)):
            raise CheckoutError("variant_id must be an integer", details={"line": index})

        parsed.append({"product_id": product_id, "variant_id": variant_id, "quantity": quantity})
    return parsed


def _build_cart(parsed_lines: list[dict]) -> Cart:
    """Cart priced from the stored products; repeated lines merge."""
    cart = Cart()
    for line in parsed_lines:
        product = db.session.get(Product, line["product_id"])
        if not product:
            raise CheckoutError("Product not found", details={"product_id": line["product_id"]})
        if line["variant_id"] is not None:
            variant = db.session.get(ProductVariant, line["variant_id"])
            if not variant or variant.product_id != product.id:
                raise CheckoutError(
                    "Variant does not belong to product",
                    details={"product_id": product.id, "variant_id": line["variant_id"]},
                )
        cart.add_item(
            product_id=product.id,
            name=product.name,
            unit_price_cents=product.price_cents,
            quantity=line["quantity"],
            variant_id=line["variant_id"],
        )
    return cart


def preview_cart(lines) -> dict:
    """Priced lines and totals at the current tax rate, without saving anything."""
    cart = _build_cart(_parse_lines(lines))
    return cart.to_dict(settings_service.get_tax_rate_bps())


def checkout(
    *,
    lines,
    payment_method: str = "cash",
    customer_id: int | None = None,
    customer_name: str | None = None,
    due_date=None,
    actor_user_id: int | None = None,
) -> Sale:
    """
    Complete a sale from cart lines [{product_id, variant_id?, quantity}].

    Raises:
        CheckoutError: empty cart, bad line, unknown product/variant,
                       insufficient stock (when decrementing)
        ValidationError: bad payment method or due date
        NotFoundError: unknown customer
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    parsed_lines = _parse_lines(lines)
    due = parse_iso_date(due_date, "due_date") if isinstance(due_date, str) else due_date

    customer = None
    if customer_id is not None:
        customer = db.session.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer not found")

    name = (customer_name or "").strip()[:255]
    if not name:
        name = customer.name if customer else WALK_IN_CUSTOMER

    tax_rate_bps = settings_service.get_tax_rate_bps()
    decrement_stock = bool(current_app.config.get("CHECKOUT_DECREMENTS_STOCK", False))

    def _op() -> Sale:
        # Sequence allocation must be the first write in the transaction.
        sale_number = document_service.next_document_number(document_type=document_service.SALE)

        cart = _build_cart(parsed_lines)
        totals = cart.totals(tax_rate_bps)
        if payment_method == "credit" and totals["total_cents"] == 0:
            raise CheckoutError("Credit sales must have a total above 0")

        sale = Sale(
            sale_number=sale_number,
            customer_id=customer.id if customer else None,
            customer_name=name,
            subtotal_cents=totals["subtotal_cents"],
            tax_rate_bps=tax_rate_bps,
            tax_cents=totals["tax_cents"],
            total_cents=totals["total_cents"],
            payment_method=payment_method,
            payment_status="pending" if payment_method == "credit" else "paid",
            created_by_user_id=actor_user_id,
        )
        db.session.add(sale)
        db.session.flush()

        for cart_line in cart.lines:
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=cart_line.product_id,
                variant_id=cart_line.variant_id,
                quantity=cart_line.quantity,
                unit_price_cents=cart_line.unit_price_cents,
                line_total_cents=cart_line.line_total_cents,
            ))

            if decrement_stock and cart_line.variant_id is not None:
                variant = lock_variant(cart_line.variant_id)
                try:
                    apply_stock_movement(
                        variant=variant,
                        delta=-cart_line.quantity,
                        log_type="sale",
                        note=f"Sale {sale_number}",
                        actor_user_id=actor_user_id,
                    )
                except StockAdjustmentError as e:
                    raise CheckoutError("Insufficient stock", details=e.details)

        if payment_method == "credit":
            db.session.add(Credit(
                sale_id=sale.id,
                customer_name=name,
                amount_due_cents=sale.total_cents,
                amount_paid_cents=0,
                due_date=due,
                status="pending",
            ))

        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s completed total_cents=%s method=%s user=%s",
        sale.sale_number, sale.total_cents, sale.payment_method, actor_user_id,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    *,
    customer_id: int | None = None,
    payment_status: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Sales newest first; date bounds are inclusive calendar dates."""
    q = db.session.query(Sale)
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    if payment_status:
        q = q.filter(Sale.payment_status == payment_status)

    start = parse_iso_date(date_from, "date_from")
    end = parse_iso_date(date_to, "date_to")
    if start:
        q = q.filter(Sale.created_at >= datetime.combine(start, time.min))
    if end:
        q = q.filter(Sale.created_at <= datetime.combine(end, time.max))

    q = q.order_by(Sale.created_at.desc(), Sale.id.desc())
    return paginate(q, page=page, per_page=per_page)
