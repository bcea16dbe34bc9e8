# Overview: Flask API routes for expense operations; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..models import Expense
from ..services import expense_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_expense,
    ValidationError,
    NotFoundError,
)
from ..decorators import require_auth, require_permission

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount_cents", "notes", "expense_date"},
    required_on_create={"category", "amount_cents"},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def list_expenses():
    """
    Query params: category, date_from, date_to (YYYY-MM-DD, inclusive), page, per_page
    """
    try:
        return expense_service.list_expenses(
            category=request.args.get("category"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def get_expense(expense_id: int):
    try:
        return expense_service.get_expense(expense_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@expenses_bp.post("")
@require_auth
@require_permission("MANAGE_EXPENSES")
def create_expense():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    expense = expense_service.create_expense(patch=patch, actor_user_id=g.current_user.id)
    return expense.to_dict(), 201


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def update_expense(expense_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        expense = expense_service.update_expense(expense_id=expense_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return expense.to_dict()


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("MANAGE_EXPENSES")
def delete_expense(expense_id: int):
    try:
        expense_service.delete_expense(expense_id=expense_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
