# Overview: Flask API routes for credit operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import credit_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.get("")
@require_auth
@require_permission("MANAGE_CREDITS")
def list_credits_route():
    """Query params: status (pending | paid | overdue), page, per_page"""
    try:
        return jsonify(credit_service.list_credits(
            status=request.args.get("status"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        ))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@credits_bp.get("/<int:credit_id>")
@require_auth
@require_permission("MANAGE_CREDITS")
def get_credit_route(credit_id: int):
    try:
        return jsonify({"credit": credit_service.get_credit(credit_id).to_dict()})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@credits_bp.post("/<int:credit_id>/payments")
@require_auth
@require_permission("MANAGE_CREDITS")
def record_payment_route(credit_id: int):
    """
    Record a payment against a credit.

    Request body:
    - amount_cents: int > 0, at most the outstanding balance
    """
    data = request.get_json(silent=True) or {}

    try:
        credit = credit_service.record_payment(
            credit_id=credit_id,
            amount_cents=data.get("amount_cents"),
            actor_user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to record credit payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"credit": credit.to_dict()})


@credits_bp.post("/mark-overdue")
@require_auth
@require_permission("MANAGE_CREDITS")
def mark_overdue_route():
    """Flag unpaid credits whose due date has passed."""
    return jsonify({"updated": credit_service.mark_overdue()})
