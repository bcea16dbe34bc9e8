# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

"""
Purchase order routes.

- Listing and detail require VIEW_SUPPLIERS
- Create / update / delete require MANAGE_PURCHASE_ORDERS
- Receiving requires RECEIVE_PURCHASE_ORDERS
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import purchasing_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def list_purchase_orders_route():
    """Query params: supplier_id, status, page, per_page"""
    try:
        return jsonify(purchasing_service.list_purchase_orders(
            supplier_id=request.args.get("supplier_id", type=int),
            status=request.args.get("status"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        ))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def get_purchase_order_route(po_id: int):
    try:
        po = purchasing_service.get_purchase_order(po_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"purchase_order": po.to_dict(include_items=True)})


@purchase_orders_bp.post("")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def create_purchase_order_route():
    """
    Create a pending purchase order.

    Request body:
    - supplier_id: int (required)
    - items: [{product_id, variant_id?, item_name?, quantity, cost_cents}] (required)
    - order_date: "YYYY-MM-DD" (optional, defaults to today)
    - payment_status: "pending" | "partial" | "paid" (optional)
    """
    data = request.get_json(silent=True) or {}
    supplier_id = data.get("supplier_id")
    if isinstance(supplier_id, bool) or not isinstance(supplier_id, int):
        return jsonify({"error": "supplier_id must be an integer"}), 400

    try:
        po = purchasing_service.create_purchase_order(
            supplier_id=supplier_id,
            items=data.get("items"),
            order_date=data.get("order_date"),
            payment_status=data.get("payment_status", "pending"),
            actor_user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"purchase_order": po.to_dict(include_items=True)}), 201


@purchase_orders_bp.put("/<int:po_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def update_purchase_order_route(po_id: int):
    """
    Request body:
    - status: "cancelled" (only from pending)
    - payment_status: "pending" | "partial" | "paid"
    """
    data = request.get_json(silent=True) or {}

    try:
        po = purchasing_service.update_purchase_order(
            po_id=po_id,
            status=data.get("status"),
            payment_status=data.get("payment_status"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"purchase_order": po.to_dict(include_items=True)})


@purchase_orders_bp.delete("/<int:po_id>")
@require_auth
@require_permission("MANAGE_PURCHASE_ORDERS")
def delete_purchase_order_route(po_id: int):
    try:
        purchasing_service.delete_purchase_order(po_id=po_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_auth
@require_permission("RECEIVE_PURCHASE_ORDERS")
def receive_purchase_order_route(po_id: int):
    """Receive a pending order: items with a variant are added to stock."""
    try:
        po = purchasing_service.receive_purchase_order(po_id=po_id, actor_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"purchase_order": po.to_dict(include_items=True)})
