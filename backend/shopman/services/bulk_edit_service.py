# Overview: Service-layer operations for bulk product edits; encapsulates business logic and database work.

"""
Bulk Product Edit

Applies one change to many selected products:

- set:    every product gets the same absolute price (one batched UPDATE)
- adjust: each product's new price is derived from its own current price,
          either by a fixed amount (cents) or a percentage
- category only: one batched UPDATE of category_id

For "adjust", all new prices are computed before anything is written. If any
result would be negative the whole batch is rejected and no product changes.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Category, Product
from ..validation import MAX_PRICE_CENTS, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry

MODES = {"set", "adjust"}
ADJUSTMENT_TYPES = {"amount", "percentage"}
MAX_ADJUSTMENT_PERCENT = 10_000


class BulkEditError(Exception):
    """Raised when a bulk edit cannot be applied."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number")
    return result


def _parse_adjustment(adjustment, adjustment_type: str) -> Decimal:
    """Adjustment as a Decimal, bounded so the result stays within price range."""
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise ValidationError(f"adjustment_type must be one of: {', '.join(sorted(ADJUSTMENT_TYPES))}")
    value = _to_decimal(adjustment, "adjustment")
    if adjustment_type == "amount" and abs(value) > MAX_PRICE_CENTS:
        raise ValidationError(f"adjustment cannot exceed {MAX_PRICE_CENTS} cents")
    if adjustment_type == "percentage" and abs(value) > MAX_ADJUSTMENT_PERCENT:
        raise ValidationError(f"adjustment cannot exceed {MAX_ADJUSTMENT_PERCENT} percent")
    return value


def compute_adjusted_price(current_cents: int, adjustment, adjustment_type: str) -> int:
    """
    New price in cents for one product.

    amount:     current + adjustment (adjustment in cents, may be negative)
    percentage: current * (1 + adjustment / 100), rounded half-up to the cent

    May return a negative number; callers decide what to do with it.
    """
    value = _parse_adjustment(adjustment, adjustment_type)
    if adjustment_type == "amount":
        return current_cents + int(value.to_integral_value(rounding=ROUND_HALF_UP))
    raw = Decimal(current_cents) * (Decimal(100) + value) / Decimal(100)
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _normalize_ids(product_ids) -> list[int]:
    if not isinstance(product_ids, (list, tuple)) or not product_ids:
        raise ValidationError("No products selected")
    ids: list[int] = []
    for raw in product_ids:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValidationError("product_ids must be integers")
        if raw not in ids:
            ids.append(raw)
    return ids


def bulk_edit_products(
    *,
    product_ids,
    mode: str = "set",
    price_cents: int | None = None,
    adjustment=None,
    adjustment_type: str = "amount",
    category_id: int | None = None,
) -> dict:
    """
    Apply a bulk edit. Returns {"updated": n, "products": [...]}.

    Raises:
        ValidationError: bad input or nothing to change ("No changes to apply")
        NotFoundError: a selected product (or the category) does not exist
        BulkEditError: an adjustment would make one or more prices negative
    """
    ids = _normalize_ids(product_ids)

    if mode not in MODES:
        raise ValidationError(f"mode must be one of: {', '.join(sorted(MODES))}")

    if category_id is not None:
        if isinstance(category_id, bool) or not isinstance(category_id, int):
            raise ValidationError("category_id must be an integer")
        if not db.session.get(Category, category_id):
            raise NotFoundError("Category not found")

    set_price = mode == "set" and price_cents is not None
    adjust_price = mode == "adjust" and adjustment not in (None, "")

    if set_price:
        if isinstance(price_cents, bool) or not isinstance(price_cents, int):
            raise ValidationError("price_cents must be an integer")
        if price_cents < 0:
            raise ValidationError("Price cannot be negative")
        if price_cents > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")
    if adjust_price:
        _parse_adjustment(adjustment, adjustment_type)

    if not set_price and not adjust_price and category_id is None:
        raise ValidationError("No changes to apply")

    def _op() -> dict:
        products = (
            lock_for_update(db.session.query(Product).filter(Product.id.in_(ids)))
            .order_by(Product.id.asc())
            .all()
        )
        found = {p.id for p in products}
        missing = [pid for pid in ids if pid not in found]
        if missing:
            raise NotFoundError(f"Products not found: {', '.join(str(m) for m in missing)}")

        if adjust_price:
            new_prices = {p.id: compute_adjusted_price(p.price_cents, adjustment, adjustment_type) for p in products}

            negative = [
                {"product_id": p.id, "sku": p.sku, "current_price_cents": p.price_cents, "new_price_cents": new_prices[p.id]}
                for p in products
                if new_prices[p.id] < 0
            ]
            if negative:
                raise BulkEditError(
                    "Price adjustment would make some products negative",
                    details={"products": negative},
                )
            too_large = [p.id for p in products if new_prices[p.id] > MAX_PRICE_CENTS]
            if too_large:
                raise BulkEditError(
                    f"Price adjustment would exceed {MAX_PRICE_CENTS} cents",
                    details={"product_ids": too_large},
                )

            for p in products:
                p.price_cents = new_prices[p.id]
                if category_id is not None:
                    p.category_id = category_id
        else:
            values: dict = {}
            if set_price:
                values["price_cents"] = price_cents
            if category_id is not None:
                values["category_id"] = category_id
            values["version_id"] = Product.version_id + 1
            values["updated_at"] = db.func.now()
            db.session.execute(
                update(Product)
                .where(Product.id.in_(ids))
                .values(**values)
                .execution_options(synchronize_session=False)
            )

        db.session.commit()
        return ids

    try:
        run_with_retry(_op)
    except (NotFoundError, BulkEditError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Bulk edit applied to %d product(s) mode=%s category_id=%s", len(ids), mode, category_id
    )

    products = (
        db.session.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id.asc())
        .all()
    )
    return {"updated": len(products), "products": [p.to_dict() for p in products]}
