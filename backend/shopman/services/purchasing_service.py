# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchasing Service

LIFECYCLE:
1. pending:   created with its items; total is the sum of line totals
2. received:  items with a variant are added to stock ("in" stock logs)
3. cancelled: closed without touching stock

Receiving happens only through receive_purchase_order, so every received
unit has a matching stock log written in the same transaction as the status
change. payment_status (pending/partial/paid) is tracked independently.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Product, ProductVariant, PurchaseOrder, PurchaseOrderItem
from ..validation import ConflictError, MAX_PRICE_CENTS, NotFoundError, ValidationError, parse_iso_date
from . import document_service
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import apply_stock_movement, lock_variant
from .pagination import paginate
from .supplier_service import get_supplier
from shopman.time_utils import utcnow

PO_STATUSES = ("pending", "received", "cancelled")
PO_PAYMENT_STATUSES = ("pending", "partial", "paid")


def _parse_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    parsed = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        product_id = raw.get("product_id")
        variant_id = raw.get("variant_id")
        quantity = raw.get("quantity")
        cost_cents = raw.get("cost_cents", 0)

        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"items[{index}].product_id must be an integer")
        if variant_id is not None and (isinstance(variant_id, bool) or not isinstance(variant_id, int)):
            raise ValidationError(f"items[{index}].variant_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        if isinstance(cost_cents, bool) or not isinstance(cost_cents, int):
            raise ValidationError(f"items[{index}].cost_cents must be an integer")
        if cost_cents < 0 or cost_cents > MAX_PRICE_CENTS:
            raise ValidationError(f"items[{index}].cost_cents must be >= 0")

        parsed.append({
            "product_id": product_id,
            "variant_id": variant_id,
            "item_name": (raw.get("item_name") or "").strip()[:255] or None,
            "quantity": quantity,
            "cost_cents": cost_cents,
        })
    return parsed


def create_purchase_order(
    *,
    supplier_id: int,
    items,
    order_date=None,
    payment_status: str = "pending",
    actor_user_id: int | None = None,
) -> PurchaseOrder:
    """Create a pending purchase order (PO-000001, ...) with its items."""
    get_supplier(supplier_id)
    if payment_status not in PO_PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PO_PAYMENT_STATUSES)}")

    parsed = _parse_items(items)
    ordered_on = parse_iso_date(order_date, "order_date") if isinstance(order_date, str) else order_date

    for item in parsed:
        product = db.session.get(Product, item["product_id"])
        if not product:
            raise NotFoundError(f"Product {item['product_id']} not found")
        if item["variant_id"] is not None:
            variant = db.session.get(ProductVariant, item["variant_id"])
            if not variant or variant.product_id != product.id:
                raise ValidationError(
                    f"Variant {item['variant_id']} does not belong to product {product.id}"
                )
        if not item["item_name"]:
            item["item_name"] = product.name[:255]

    def _op() -> PurchaseOrder:
        po_number = document_service.next_document_number(document_type=document_service.PURCHASE_ORDER)

        po = PurchaseOrder(
            po_number=po_number,
            supplier_id=supplier_id,
            status="pending",
            payment_status=payment_status,
            order_date=ordered_on or date.today(),
            created_by_user_id=actor_user_id,
        )
        db.session.add(po)
        db.session.flush()

        total = 0
        for item in parsed:
            line_total = item["quantity"] * item["cost_cents"]
            total += line_total
            db.session.add(PurchaseOrderItem(po_id=po.id, line_total_cents=line_total, **item))

        po.total_cents = total
        db.session.commit()
        return po

    po = run_with_retry(_op)
    current_app.logger.info("Purchase order %s created total_cents=%s", po.po_number, po.total_cents)
    return po


def get_purchase_order(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if not po:
        raise NotFoundError("Purchase order not found")
    return po


def list_purchase_orders(
    *,
    supplier_id: int | None = None,
    status: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    if status is not None and status not in PO_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")

    q = db.session.query(PurchaseOrder)
    if supplier_id is not None:
        q = q.filter(PurchaseOrder.supplier_id == supplier_id)
    if status:
        q = q.filter(PurchaseOrder.status == status)
    q = q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    return paginate(q, page=page, per_page=per_page)


def update_purchase_order(
    *,
    po_id: int,
    status: str | None = None,
    payment_status: str | None = None,
) -> PurchaseOrder:
    """
    Change payment status, or cancel a pending order.

    Setting status to "received" is rejected here; use receive_purchase_order
    so stock is updated.
    """
    if status is None and payment_status is None:
        raise ValidationError("No changes to apply")
    if status is not None and status not in PO_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")
    if payment_status is not None and payment_status not in PO_PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(PO_PAYMENT_STATUSES)}")

    def _op() -> PurchaseOrder:
        po = lock_for_update(db.session.query(PurchaseOrder).filter(PurchaseOrder.id == po_id)).first()
        if not po:
            raise NotFoundError("Purchase order not found")

        if status is not None and status != po.status:
            if status == "received":
                raise ValidationError("Use the receive operation to mark a purchase order received")
            if po.status != "pending":
                raise ConflictError(f"Purchase order is already {po.status}")
            po.status = status

        if payment_status is not None:
            po.payment_status = payment_status

        db.session.commit()
        return po

    try:
        return run_with_retry(_op)
    except (NotFoundError, ValidationError, ConflictError):
        db.session.rollback()
        raise


def delete_purchase_order(*, po_id: int) -> None:
    po = get_purchase_order(po_id)
    db.session.delete(po)
    db.session.commit()


def receive_purchase_order(*, po_id: int, actor_user_id: int | None = None) -> PurchaseOrder:
    """
    Receive a pending order: restock items that name a variant, mark received.

    Raises:
        NotFoundError: unknown purchase order
        ConflictError: order is not pending
    """
    def _op() -> PurchaseOrder:
        po = lock_for_update(db.session.query(PurchaseOrder).filter(PurchaseOrder.id == po_id)).first()
        if not po:
            raise NotFoundError("Purchase order not found")
        if po.status != "pending":
            raise ConflictError(f"Purchase order is already {po.status}")

        for item in po.items:
            if item.variant_id is None:
                continue
            variant = lock_variant(item.variant_id)
            apply_stock_movement(
                variant=variant,
                delta=item.quantity,
                log_type="in",
                note=f"Purchase order {po.po_number}",
                actor_user_id=actor_user_id,
            )

        po.status = "received"
        po.received_at = utcnow()
        db.session.commit()
        return po

    try:
        po = run_with_retry(_op)
    except (NotFoundError, ConflictError):
        db.session.rollback()
        raise

    current_app.logger.info("Purchase order %s received by user=%s", po.po_number, actor_user_id)
    return po
