# Overview: Service-layer operations for products and categories; encapsulates business logic and database work.

"""
Catalog Service

Product master data and categories.

- SKU is unique across the shop; barcode is unique when present
- Deleting a product removes its variants, stock logs and line items (FK cascade)
- Deleting a category leaves its products uncategorized (FK set null)
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product
from ..validation import ConflictError, NotFoundError, ValidationError
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {"sku", "barcode", "name", "description", "price_cents", "category_id", "is_active"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# =============================================================================
# Categories
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def _ensure_category_name_free(name: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Category).filter(db.func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("Category name already exists.")


def create_category(*, patch: dict) -> Category:
    name = patch["name"]
    _ensure_category_name_free(name)

    category = Category(name=name)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category name already exists.")
    return category


def update_category(*, category_id: int, patch: dict) -> Category:
    category = get_category(category_id)
    if "name" in patch:
        _ensure_category_name_free(patch["name"], exclude_id=category_id)
        category.name = patch["name"]
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category name already exists.")
    return category


def delete_category(*, category_id: int) -> None:
    category = get_category(category_id)
    db.session.delete(category)
    db.session.commit()


# =============================================================================
# Products
# =============================================================================

def list_products(
    *,
    search: str | None = None,
    category_id: int | None = None,
    include_inactive: bool = True,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional search (name, SKU, barcode) and pagination.
    """
    q = db.session.query(Product)

    if search:
        term = f"%{search.strip()}%"
        q = q.filter(
            db.or_(
                Product.name.ilike(term),
                Product.sku.ilike(term),
                Product.barcode.ilike(term),
            )
        )
    if category_id is not None:
        q = q.filter(Product.category_id == category_id)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))

    q = q.order_by(Product.name.asc(), Product.id.asc())
    return paginate(q, page=page, per_page=per_page)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def lookup_product(code: str) -> Product:
    """
    Find a product by exact SKU or barcode.

    This is where decoded barcode-scanner text lands; SKU matches win over
    barcode matches.
    """
    code = (code or "").strip()
    if not code:
        raise ValidationError("code is required")

    product = db.session.query(Product).filter(Product.sku == code).first()
    if product is None:
        product = db.session.query(Product).filter(Product.barcode == code).first()
    if product is None:
        raise NotFoundError("No product matches that code")
    return product


def _ensure_unique_identifiers(patch: dict, exclude_id: int | None = None) -> None:
    if patch.get("sku"):
        q = db.session.query(Product.id).filter(Product.sku == patch["sku"])
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise ConflictError("SKU already exists.")

    if patch.get("barcode"):
        q = db.session.query(Product.id).filter(Product.barcode == patch["barcode"])
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first():
            raise ConflictError("Barcode already exists.")


def _ensure_category_exists(patch: dict) -> None:
    if patch.get("category_id") is not None:
        if not db.session.get(Category, patch["category_id"]):
            raise ValidationError("category_id does not reference an existing category")


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: SKU or barcode already in use
        ValidationError: unknown category
    """
    if not patch.get("sku"):
        raise ValidationError("sku is required")

    _ensure_unique_identifiers(patch)
    _ensure_category_exists(patch)

    p = Product()
    apply_product_patch(p, patch)

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("SKU or barcode already exists.")

    current_app.logger.info("Product created id=%s sku=%s", p.id, p.sku)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    p = get_product(product_id)

    _ensure_unique_identifiers(patch, exclude_id=product_id)
    _ensure_category_exists(patch)

    apply_product_patch(p, patch)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("SKU or barcode already exists.")
    return p


def delete_product(*, product_id: int) -> None:
    """Delete a product; variants, stock logs and line items go with it."""
    p = get_product(product_id)
    db.session.delete(p)
    db.session.commit()
    current_app.logger.info("Product deleted id=%s", product_id)
