# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Inventory management routes.

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY permission
- Variant create/edit/delete require MANAGE_VARIANTS permission
- Stock adjustments require ADJUST_INVENTORY permission

Quantities only change through /adjust (and the sale, return and purchase
order flows); every change writes a stock log in the same transaction.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import ProductVariant
from ..services import inventory_service
from ..services.inventory_service import StockAdjustmentError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_variant,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"size", "color", "quantity", "min_quantity"},
    required_on_create=set(),
)


# =============================================================================
# VARIANTS
# =============================================================================

@inventory_bp.get("/products/<int:product_id>/variants")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_variants(product_id: int):
    try:
        variants = inventory_service.list_variants(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [v.to_dict() for v in variants], "count": len(variants)}


@inventory_bp.post("/products/<int:product_id>/variants")
@require_auth
@require_permission("MANAGE_VARIANTS")
def create_variant(product_id: int):
    """
    Create a variant. Body: {size?, color?, quantity?, min_quantity?}

    An opening quantity above zero is recorded as an "in" stock log.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=False)
        enforce_rules_variant(patch)
        variant = inventory_service.create_variant(
            product_id=product_id,
            patch=patch,
            actor_user_id=g.current_user.id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return variant.to_dict(), 201


@inventory_bp.get("/variants/<int:variant_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_variant(variant_id: int):
    try:
        return inventory_service.get_variant(variant_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@inventory_bp.put("/variants/<int:variant_id>")
@require_auth
@require_permission("MANAGE_VARIANTS")
def update_variant(variant_id: int):
    """Update size, color or min_quantity. Quantity is rejected; use /adjust."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=True)
        enforce_rules_variant(patch)
        variant = inventory_service.update_variant(variant_id=variant_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409

    return variant.to_dict()


@inventory_bp.delete("/variants/<int:variant_id>")
@require_auth
@require_permission("MANAGE_VARIANTS")
def delete_variant(variant_id: int):
    try:
        inventory_service.delete_variant(variant_id=variant_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}


# =============================================================================
# STOCK ADJUSTMENT
# =============================================================================

@inventory_bp.post("/variants/<int:variant_id>/adjust")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_stock(variant_id: int):
    """
    Manual stock adjustment.

    Request body:
    - operation: "add" | "remove" | "set" (required)
    - quantity: int >= 0 (required)
    - note: str (optional)

    A result below zero is rejected and nothing is written.
    """
    data = request.get_json(silent=True) or {}

    if "operation" not in data or "quantity" not in data:
        return jsonify({"error": "operation and quantity required"}), 400

    try:
        variant, log = inventory_service.adjust_stock(
            variant_id=variant_id,
            operation=data.get("operation"),
            value=data.get("quantity"),
            note=data.get("note"),
            actor_user_id=g.current_user.id,
        )
    except StockAdjustmentError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"variant": variant.to_dict(), "stock_log": log.to_dict()})


# =============================================================================
# LEVELS & HISTORY
# =============================================================================

@inventory_bp.get("/levels")
@require_auth
@require_permission("VIEW_INVENTORY")
def stock_levels():
    """
    Query params:
    - search: str (optional) - product name or SKU
    - low_stock_only: bool (optional)
    """
    return inventory_service.list_stock_levels(
        search=request.args.get("search"),
        low_stock_only=request.args.get("low_stock_only", "false").lower() == "true",
    )


@inventory_bp.get("/history")
@require_auth
@require_permission("VIEW_INVENTORY")
def stock_history():
    """
    Stock logs newest first.

    Query params: product_id, variant_id, type, page (default 1), per_page (default 100)
    """
    try:
        return inventory_service.list_stock_history(
            product_id=request.args.get("product_id", type=int),
            variant_id=request.args.get("variant_id", type=int),
            log_type=request.args.get("type"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
