# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_PRODUCTS permission
- Write operations require MANAGE_PRODUCTS permission
- Imports require IMPORT_PRODUCTS permission
"""
from flask import Blueprint, request, jsonify, current_app
from ..services import catalog_service
from ..services.bulk_edit_service import bulk_edit_products, BulkEditError
from ..services.import_service import import_products
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "barcode", "name", "description", "price_cents", "category_id", "is_active"},
    required_on_create={"sku", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List products with optional search and pagination.

    Query params:
    - search: str (optional) - matches name, SKU or barcode
    - category_id: int (optional)
    - active_only: bool (optional, default false)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return catalog_service.list_products(
        search=request.args.get("search"),
        category_id=request.args.get("category_id", type=int),
        include_inactive=request.args.get("active_only", "false").lower() != "true",
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/lookup")
@require_auth
@require_permission("VIEW_PRODUCTS")
def lookup_product():
    """
    Find a product by exact SKU or barcode (?code=...).

    Barcode scanner front-ends post the decoded text here.
    """
    try:
        product = catalog_service.lookup_product(request.args.get("code", ""))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return product.to_dict()


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    data = product.to_dict()
    data["variants"] = [v.to_dict() for v in product.variants]
    return data


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """Create a new product."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = catalog_service.create_product(patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """Partial update of a product."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return updated.to_dict()


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Delete a product; variants, stock logs and line items go with it."""
    try:
        catalog_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200


@products_bp.post("/bulk-edit")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def bulk_edit_route():
    """
    Apply one change to many products.

    Request body:
    - product_ids: [int] (required)
    - mode: "set" | "adjust" (default "set")
    - price_cents: int (mode=set)
    - adjustment: number (mode=adjust; cents for "amount", percent for "percentage")
    - adjustment_type: "amount" | "percentage" (default "amount")
    - category_id: int (optional)

    An adjustment that would make any price negative changes nothing.
    """
    data = request.get_json(silent=True) or {}

    try:
        result = bulk_edit_products(
            product_ids=data.get("product_ids"),
            mode=data.get("mode", "set"),
            price_cents=data.get("price_cents"),
            adjustment=data.get("adjustment"),
            adjustment_type=data.get("adjustment_type", "amount"),
            category_id=data.get("category_id"),
        )
    except BulkEditError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to bulk edit products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result)


@products_bp.post("/import")
@require_auth
@require_permission("IMPORT_PRODUCTS")
def import_route():
    """
    Import already-parsed product rows.

    Request body:
    - rows: [{name, sku, price | price_cents, barcode?, description?}]
    """
    data = request.get_json(silent=True) or {}

    try:
        result = import_products(data.get("rows"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to import products")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 201
