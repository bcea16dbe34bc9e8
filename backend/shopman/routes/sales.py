# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import CheckoutError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, require_permission


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/cart/preview")
@require_auth
@require_permission("CREATE_SALE")
def preview_cart_route():
    """
    Price a cart without completing the sale.

    Request body:
    - lines: [{product_id, variant_id?, quantity}]
    """
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(sales_service.preview_cart(data.get("lines")))
    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), 400


@sales_bp.post("/checkout")
@require_auth
@require_permission("CREATE_SALE")
def checkout_route():
    """
    Complete a sale.

    Request body:
    - lines: [{product_id, variant_id?, quantity}] (required, non-empty)
    - payment_method: "cash" | "card" | "credit" (default "cash")
    - customer_id: int (optional)
    - customer_name: str (optional, defaults to the customer's name or "Walk-in Customer")
    - due_date: "YYYY-MM-DD" (optional, credit sales)

    The sale, its items, any stock movements and the credit are stored
    together or not at all.
    """
    data = request.get_json(silent=True) or {}

    try:
        sale = sales_service.checkout(
            lines=data.get("lines"),
            payment_method=data.get("payment_method", "cash"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            due_date=data.get("due_date"),
            actor_user_id=g.current_user.id,
        )
    except CheckoutError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict(include_items=True)}), 201


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    Query params: customer_id, payment_status, date_from, date_to (YYYY-MM-DD), page, per_page
    """
    try:
        return jsonify(sales_service.list_sales(
            customer_id=request.args.get("customer_id", type=int),
            payment_status=request.args.get("payment_status"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        ))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    """Sale with its items."""
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"sale": sale.to_dict(include_items=True)})
