# Overview: Service-layer operations for returns; encapsulates business logic and database work.

"""
Returns Service

LIFECYCLE:
    pending -> processed   (items with a variant go back into stock)
    pending -> rejected    (no stock change)

Only pending returns can change status. Processing restocks every item that
names a variant and writes a "return" stock log for it, all in the same
transaction as the status change.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, ProductVariant, Return, ReturnItem, Sale
from ..validation import ConflictError, MAX_PRICE_CENTS, NotFoundError, ValidationError
from . import document_service
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import apply_stock_movement, lock_variant
from .pagination import paginate
from shopman.time_utils import utcnow

RETURN_STATUSES = ("pending", "processed", "rejected")


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
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"items[{index}].product_id must be an integer")
        if variant_id is not None and (isinstance(variant_id, bool) or not isinstance(variant_id, int)):
            raise ValidationError(f"items[{index}].variant_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        parsed.append({"product_id": product_id, "variant_id": variant_id, "quantity": quantity})
    return parsed


def create_return(
    *,
    items,
    refund_amount_cents: int,
    sale_id: int | None = None,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> Return:
    """Create a pending return (RET-000001, ...)."""
    if isinstance(refund_amount_cents, bool) or not isinstance(refund_amount_cents, int):
        raise ValidationError("refund_amount_cents must be an integer")
    if refund_amount_cents < 0 or refund_amount_cents > MAX_PRICE_CENTS:
        raise ValidationError("refund_amount_cents must be >= 0")

    parsed = _parse_items(items)

    if sale_id is not None and not db.session.get(Sale, sale_id):
        raise NotFoundError("Sale not found")

    for item in parsed:
        if not db.session.get(Product, item["product_id"]):
            raise NotFoundError(f"Product {item['product_id']} not found")
        if item["variant_id"] is not None:
            variant = db.session.get(ProductVariant, item["variant_id"])
            if not variant or variant.product_id != item["product_id"]:
                raise ValidationError(f"Variant {item['variant_id']} does not belong to product {item['product_id']}")

    def _op() -> Return:
        return_number = document_service.next_document_number(document_type=document_service.RETURN)

        doc = Return(
            return_number=return_number,
            sale_id=sale_id,
            refund_amount_cents=refund_amount_cents,
            status="pending",
            reason=(reason or "").strip() or None,
            created_by_user_id=actor_user_id,
        )
        db.session.add(doc)
        db.session.flush()

        for item in parsed:
            db.session.add(ReturnItem(return_id=doc.id, **item))

        db.session.commit()
        return doc

    doc = run_with_retry(_op)
    current_app.logger.info("Return %s created refund_cents=%s", doc.return_number, refund_amount_cents)
    return doc


def get_return(return_id: int) -> Return:
    doc = db.session.get(Return, return_id)
    if not doc:
        raise NotFoundError("Return not found")
    return doc


def _lock_pending(return_id: int) -> Return:
    doc = lock_for_update(db.session.query(Return).filter(Return.id == return_id)).first()
    if not doc:
        raise NotFoundError("Return not found")
    if doc.status != "pending":
        raise ConflictError(f"Return is already {doc.status}")
    return doc


def process_return(*, return_id: int, actor_user_id: int | None = None) -> Return:
    """Mark processed and restock items that name a variant."""
    def _op() -> Return:
        doc = _lock_pending(return_id)

        for item in doc.items:
            if item.variant_id is None:
                continue
            variant = lock_variant(item.variant_id)
            apply_stock_movement(
                variant=variant,
                delta=item.quantity,
                log_type="return",
                note=f"Return {doc.return_number}",
                actor_user_id=actor_user_id,
            )

        doc.status = "processed"
        doc.processed_at = utcnow()
        db.session.commit()
        return doc

    try:
        doc = run_with_retry(_op)
    except (NotFoundError, ConflictError):
        db.session.rollback()
        raise

    current_app.logger.info("Return %s processed by user=%s", doc.return_number, actor_user_id)
    return doc


def reject_return(*, return_id: int, actor_user_id: int | None = None) -> Return:
    def _op() -> Return:
        doc = _lock_pending(return_id)
        doc.status = "rejected"
        db.session.commit()
        return doc

    try:
        doc = run_with_retry(_op)
    except (NotFoundError, ConflictError):
        db.session.rollback()
        raise

    current_app.logger.info("Return %s rejected by user=%s", doc.return_number, actor_user_id)
    return doc


def list_returns(*, status: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    if status is not None and status not in RETURN_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(RETURN_STATUSES)}")

    q = db.session.query(Return)
    if status:
        q = q.filter(Return.status == status)
    q = q.order_by(Return.created_at.desc(), Return.id.desc())
    return paginate(q, page=page, per_page=per_page)
