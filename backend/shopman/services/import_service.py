# Overview: Service-layer operations for product imports; encapsulates business logic and database work.

"""
Product Import

Accepts rows that a client has already parsed (for example from a CSV file)
and inserts the new products in one transaction.

Per-row rules, applied in file order:
- rows without a name or SKU are reported as invalid
- rows with a negative price are skipped silently
- a SKU repeated within the batch is counted in duplicates_in_file
  (the first occurrence wins)
- SKUs already stored are counted in skipped_existing
- fields are truncated: name 200, sku 50, barcode 50, description 1000
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Product
from ..validation import MAX_PRICE_CENTS, ValidationError
from .concurrency import run_with_retry

MAX_ROWS = 5000

FIELD_LIMITS = {
    "name": 200,
    "sku": 50,
    "barcode": 50,
    "description": 1000,
}


def _text(row: dict, key: str) -> str | None:
    value = row.get(key)
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[: FIELD_LIMITS[key]]


def _to_cents(cents: Decimal) -> int:
    # Out-of-range values are pinned just past the limit so the row is rejected.
    if cents > MAX_PRICE_CENTS:
        return MAX_PRICE_CENTS + 1
    if cents < -MAX_PRICE_CENTS:
        return -MAX_PRICE_CENTS - 1
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _parse_decimal(raw) -> Decimal | None:
    if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() else None


def _price_cents(row: dict) -> int:
    """
    price_cents (integer) wins; otherwise price (decimal units) is converted
    half-up to cents. Missing or unparseable prices count as 0.
    """
    if row.get("price_cents") is not None and not isinstance(row.get("price_cents"), bool):
        cents = _parse_decimal(row["price_cents"])
        return 0 if cents is None else _to_cents(cents)

    units = _parse_decimal(row.get("price"))
    if units is None:
        return 0
    return _to_cents(units * 100)


def import_products(rows: Any) -> dict:
    """
    Import product rows.

    Returns:
        {"imported": n, "skipped_existing": n, "duplicates_in_file": n,
         "skipped_negative_price": n, "invalid": [{"row": i, "error": ...}],
         "products": [...]}

    Raises:
        ValidationError: rows is not a non-empty list, or no row is importable
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError("rows must be a non-empty list")
    if len(rows) > MAX_ROWS:
        raise ValidationError(f"At most {MAX_ROWS} rows can be imported at once")

    candidates: list[dict] = []
    seen_skus: set[str] = set()
    seen_barcodes: set[str] = set()
    duplicates_in_file = 0
    skipped_negative = 0
    invalid: list[dict] = []

    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            invalid.append({"row": index, "error": "Row must be an object"})
            continue

        name = _text(row, "name")
        sku = _text(row, "sku")
        if not name or not sku:
            invalid.append({"row": index, "error": "name and sku are required"})
            continue

        price = _price_cents(row)
        if price < 0:
            skipped_negative += 1
            continue
        if price > MAX_PRICE_CENTS:
            invalid.append({"row": index, "error": f"price exceeds {MAX_PRICE_CENTS} cents"})
            continue

        if sku in seen_skus:
            duplicates_in_file += 1
            continue
        seen_skus.add(sku)

        barcode = _text(row, "barcode")
        if barcode and barcode in seen_barcodes:
            invalid.append({"row": index, "error": f"Barcode {barcode} repeated in file"})
            continue
        if barcode:
            seen_barcodes.add(barcode)

        candidates.append({
            "row": index,
            "name": name,
            "sku": sku,
            "barcode": barcode,
            "price_cents": price,
            "description": _text(row, "description"),
        })

    if not candidates:
        raise ValidationError("No valid products found in import")

    def _op() -> dict:
        existing_skus = {
            sku
            for (sku,) in db.session.query(Product.sku)
            .filter(Product.sku.in_([c["sku"] for c in candidates]))
            .all()
        }
        barcodes = [c["barcode"] for c in candidates if c["barcode"]]
        existing_barcodes = set()
        if barcodes:
            existing_barcodes = {
                bc
                for (bc,) in db.session.query(Product.barcode).filter(Product.barcode.in_(barcodes)).all()
            }

        created: list[Product] = []
        skipped_existing = 0
        barcode_conflicts: list[dict] = []

        for c in candidates:
            if c["sku"] in existing_skus:
                skipped_existing += 1
                continue
            if c["barcode"] and c["barcode"] in existing_barcodes:
                barcode_conflicts.append({"row": c["row"], "error": f"Barcode {c['barcode']} already exists"})
                continue
            product = Product(
                name=c["name"],
                sku=c["sku"],
                barcode=c["barcode"],
                price_cents=c["price_cents"],
                description=c["description"],
            )
            db.session.add(product)
            created.append(product)

        db.session.commit()
        return {
            "created": created,
            "skipped_existing": skipped_existing,
            "barcode_conflicts": barcode_conflicts,
        }

    result = run_with_retry(_op)
    created = result["created"]

    current_app.logger.info(
        "Product import: imported=%d skipped_existing=%d duplicates_in_file=%d",
        len(created), result["skipped_existing"], duplicates_in_file,
    )

    return {
        "imported": len(created),
        "skipped_existing": result["skipped_existing"],
        "duplicates_in_file": duplicates_in_file,
        "skipped_negative_price": skipped_negative,
        "invalid": invalid + result["barcode_conflicts"],
        "products": [p.to_dict() for p in created],
    }
