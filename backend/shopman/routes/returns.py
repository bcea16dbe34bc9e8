# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

"""
Return document routes.

- Listing and detail require VIEW_SALES
- Create / process / reject require PROCESS_RETURN
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import returns_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_returns_route():
    """Query params: status, page, per_page"""
    try:
        return jsonify(returns_service.list_returns(
            status=request.args.get("status"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        ))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@returns_bp.get("/<int:return_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_return_route(return_id: int):
    try:
        doc = returns_service.get_return(return_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"return": doc.to_dict(include_items=True)})


@returns_bp.post("")
@require_auth
@require_permission("PROCESS_RETURN")
def create_return_route():
    """
    Create a pending return.

    Request body:
    - items: [{product_id, variant_id?, quantity}] (required)
    - refund_amount_cents: int >= 0 (required)
    - sale_id: int (optional)
    - reason: str (optional)
    """
    data = request.get_json(silent=True) or {}
    if "refund_amount_cents" not in data:
        return jsonify({"error": "refund_amount_cents required"}), 400

    try:
        doc = returns_service.create_return(
            items=data.get("items"),
            refund_amount_cents=data.get("refund_amount_cents"),
            sale_id=data.get("sale_id"),
            reason=data.get("reason"),
            actor_user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"return": doc.to_dict(include_items=True)}), 201


@returns_bp.post("/<int:return_id>/process")
@require_auth
@require_permission("PROCESS_RETURN")
def process_return_route(return_id: int):
    """Mark processed; items with a variant are restocked."""
    try:
        doc = returns_service.process_return(return_id=return_id, actor_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"return": doc.to_dict(include_items=True)})


@returns_bp.post("/<int:return_id>/reject")
@require_auth
@require_permission("PROCESS_RETURN")
def reject_return_route(return_id: int):
    try:
        doc = returns_service.reject_return(return_id=return_id, actor_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({"return": doc.to_dict(include_items=True)})
