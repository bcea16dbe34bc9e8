# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Inventory Service

Variant stock levels and the stock log.

INVARIANTS:
- A variant's quantity is never negative. Every change is checked against
  the locked row before it is written.
- Every quantity change writes exactly one StockLog row in the same
  transaction as the change itself; if either write fails, neither persists.
- Stock logs are append-only.

Manual adjustment log semantics:
- add    -> type "adjustment_in",  quantity = value
- remove -> type "adjustment_out", quantity = value
- set    -> type "adjustment_set", quantity = resulting on-hand
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, ProductVariant, StockLog, STOCK_LOG_TYPES
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate

OPERATIONS = ("add", "remove", "set")

ADJUSTMENT_LOG_TYPES = {
    "add": "adjustment_in",
    "remove": "adjustment_out",
    "set": "adjustment_set",
}

VARIANT_MUTABLE_FIELDS = {"size", "color", "min_quantity"}


class StockAdjustmentError(Exception):
    """Raised when a stock change would be invalid (e.g. negative on-hand)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


# =============================================================================
# Pure stock math
# =============================================================================

def compute_new_quantity(current: int, operation: str, value: int) -> int:
    """
    Resulting quantity for a manual adjustment.

    add: current + value, remove: current - value, set: value.
    Raises StockAdjustmentError when the result would be negative.
    """
    if operation not in OPERATIONS:
        raise ValidationError(f"operation must be one of: {', '.join(OPERATIONS)}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("quantity must be an integer")
    if value < 0:
        raise ValidationError("quantity must be >= 0")

    if operation == "add":
        new_quantity = current + value
    elif operation == "remove":
        new_quantity = current - value
    else:
        new_quantity = value

    if new_quantity < 0:
        raise StockAdjustmentError(
            "Stock cannot go negative",
            details={"current_quantity": current, "operation": operation, "value": value},
        )
    return new_quantity


def stock_status(quantity: int, min_quantity: int) -> str:
    if quantity == 0:
        return "out_of_stock"
    if quantity <= min_quantity:
        return "low_stock"
    return "in_stock"


# =============================================================================
# Internal helpers shared with sales / returns / purchasing
# =============================================================================

def lock_variant(variant_id: int) -> ProductVariant:
    variant = lock_for_update(
        db.session.query(ProductVariant).filter(ProductVariant.id == variant_id)
    ).first()
    if not variant:
        raise NotFoundError("Variant not found")
    return variant


def apply_stock_movement(
    *,
    variant: ProductVariant,
    delta: int,
    log_type: str,
    note: str | None,
    actor_user_id: int | None,
    logged_quantity: int | None = None,
) -> StockLog:
    """
    Change a (locked) variant's quantity by delta and append its stock log.

    Does not commit; the caller owns the transaction.
    """
    if log_type not in STOCK_LOG_TYPES:
        raise ValueError(f"Unknown stock log type: {log_type}")

    new_quantity = variant.quantity + delta
    if new_quantity < 0:
        raise StockAdjustmentError(
            "Insufficient stock",
            details={
                "variant_id": variant.id,
                "available": variant.quantity,
                "requested": -delta,
            },
        )

    variant.quantity = new_quantity
    log = StockLog(
        product_id=variant.product_id,
        variant_id=variant.id,
        type=log_type,
        quantity=abs(delta) if logged_quantity is None else logged_quantity,
        note=note,
        created_by_user_id=actor_user_id,
    )
    db.session.add(log)
    return log


# =============================================================================
# Manual adjustment
# =============================================================================

def adjust_stock(
    *,
    variant_id: int,
    operation: str,
    value: int,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> tuple[ProductVariant, StockLog]:
    """
    Apply add/remove/set to a variant and log it, atomically.

    Raises:
        NotFoundError: unknown variant
        ValidationError: bad operation or value
        StockAdjustmentError: result would be negative (nothing is written)
    """
    if operation not in OPERATIONS:
        raise ValidationError(f"operation must be one of: {', '.join(OPERATIONS)}")

    note = (note or "").strip()[:500] or f"Stock {operation} via manual adjustment"

    def _op():
        variant = lock_variant(variant_id)
        new_quantity = compute_new_quantity(variant.quantity, operation, value)

        log = apply_stock_movement(
            variant=variant,
            delta=new_quantity - variant.quantity,
            log_type=ADJUSTMENT_LOG_TYPES[operation],
            note=note,
            actor_user_id=actor_user_id,
            logged_quantity=new_quantity if operation == "set" else value,
        )

        db.session.commit()
        return variant, log

    try:
        variant, log = run_with_retry(_op)
    except (NotFoundError, ValidationError, StockAdjustmentError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Stock %s variant=%s value=%s -> quantity=%s user=%s",
        operation, variant.id, value, variant.quantity, actor_user_id,
    )
    return variant, log


# =============================================================================
# Variants
# =============================================================================

def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_variant(variant_id: int) -> ProductVariant:
    variant = db.session.get(ProductVariant, variant_id)
    if not variant:
        raise NotFoundError("Variant not found")
    return variant


def list_variants(product_id: int) -> list[ProductVariant]:
    _get_product(product_id)
    return (
        db.session.query(ProductVariant)
        .filter_by(product_id=product_id)
        .order_by(ProductVariant.id.asc())
        .all()
    )


def _ensure_combination_free(product_id: int, size, color, exclude_id: int | None = None) -> None:
    q = db.session.query(ProductVariant.id).filter(
        ProductVariant.product_id == product_id,
        ProductVariant.size.is_(None) if size is None else ProductVariant.size == size,
        ProductVariant.color.is_(None) if color is None else ProductVariant.color == color,
    )
    if exclude_id is not None:
        q = q.filter(ProductVariant.id != exclude_id)
    if q.first():
        raise ConflictError("A variant with this size and color already exists for the product.")


def create_variant(*, product_id: int, patch: dict, actor_user_id: int | None = None) -> ProductVariant:
    """
    Create a variant. An opening quantity above zero is logged as stock "in".
    """
    _get_product(product_id)

    size = patch.get("size")
    color = patch.get("color")
    quantity = patch.get("quantity") or 0
    min_quantity = patch.get("min_quantity")
    if min_quantity is None:
        min_quantity = 5

    _ensure_combination_free(product_id, size, color)

    def _op():
        variant = ProductVariant(
            product_id=product_id,
            size=size,
            color=color,
            quantity=quantity,
            min_quantity=min_quantity,
        )
        db.session.add(variant)
        db.session.flush()

        if quantity > 0:
            db.session.add(StockLog(
                product_id=product_id,
                variant_id=variant.id,
                type="in",
                quantity=quantity,
                note="Opening stock",
                created_by_user_id=actor_user_id,
            ))

        db.session.commit()
        return variant

    try:
        return run_with_retry(_op)
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A variant with this size and color already exists for the product.")


def update_variant(*, variant_id: int, patch: dict) -> ProductVariant:
    """
    Update size, color or reorder threshold.

    Quantity is not editable here; it only changes through adjust_stock and
    the document flows, so every change is logged.
    """
    if "quantity" in patch:
        raise ValidationError("quantity cannot be edited directly; use a stock adjustment")

    variant = get_variant(variant_id)

    size = patch.get("size", variant.size)
    color = patch.get("color", variant.color)
    if "size" in patch or "color" in patch:
        _ensure_combination_free(variant.product_id, size, color, exclude_id=variant.id)

    for k, v in patch.items():
        if k in VARIANT_MUTABLE_FIELDS:
            setattr(variant, k, v)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A variant with this size and color already exists for the product.")
    return variant


def delete_variant(*, variant_id: int) -> None:
    variant = get_variant(variant_id)
    db.session.delete(variant)
    db.session.commit()


# =============================================================================
# Stock levels & history
# =============================================================================

def _stock_row(variant: ProductVariant, product: Product) -> dict:
    return {
        "variant_id": variant.id,
        "product_id": product.id,
        "product_name": product.name,
        "sku": product.sku,
        "size": variant.size,
        "color": variant.color,
        "label": variant.label,
        "quantity": variant.quantity,
        "min_quantity": variant.min_quantity,
        "status": stock_status(variant.quantity, variant.min_quantity),
    }


def list_stock_levels(*, search: str | None = None, low_stock_only: bool = False) -> dict:
    """
    Every variant with its product, stock status and summary counts.

    low_stock_only keeps variants at or below their reorder threshold
    (out-of-stock included).
    """
    q = (
        db.session.query(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
    )
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(Product.name.ilike(term), Product.sku.ilike(term)))
    if low_stock_only:
        q = q.filter(ProductVariant.quantity <= ProductVariant.min_quantity)

    rows = q.order_by(Product.name.asc(), ProductVariant.id.asc()).all()
    items = [_stock_row(v, p) for v, p in rows]

    return {
        "items": items,
        "count": len(items),
        "summary": {
            "total_variants": len(items),
            "low_stock": sum(1 for i in items if i["quantity"] <= i["min_quantity"]),
            "out_of_stock": sum(1 for i in items if i["quantity"] == 0),
            "total_units": sum(i["quantity"] for i in items),
        },
    }


def low_stock_variants() -> list[dict]:
    return list_stock_levels(low_stock_only=True)["items"]


def list_stock_history(
    *,
    product_id: int | None = None,
    variant_id: int | None = None,
    log_type: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Stock logs newest first, optionally filtered."""
    if log_type is not None and log_type not in STOCK_LOG_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(STOCK_LOG_TYPES)}")

    q = db.session.query(StockLog)
    if product_id is not None:
        q = q.filter(StockLog.product_id == product_id)
    if variant_id is not None:
        q = q.filter(StockLog.variant_id == variant_id)
    if log_type is not None:
        q = q.filter(StockLog.type == log_type)

    q = q.order_by(StockLog.created_at.desc(), StockLog.id.desc())
    return paginate(q, page=page if page is not None else 1, per_page=per_page or 100)
