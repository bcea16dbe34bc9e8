# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Expense
from ..validation import NotFoundError, enforce_rules_expense, parse_iso_date
from .pagination import paginate

EXPENSE_MUTABLE_FIELDS = {"category", "amount_cents", "notes", "expense_date"}


def list_expenses(
    *,
    category: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Expenses newest first; date bounds are inclusive."""
    q = db.session.query(Expense)
    if category:
        q = q.filter(Expense.category == category.strip())

    start = parse_iso_date(date_from, "date_from")
    end = parse_iso_date(date_to, "date_to")
    if start:
        q = q.filter(Expense.expense_date >= start)
    if end:
        q = q.filter(Expense.expense_date <= end)

    q = q.order_by(Expense.expense_date.desc(), Expense.id.desc())
    result = paginate(q, page=page, per_page=per_page)
    result["total_cents"] = sum(e["amount_cents"] for e in result["items"])
    return result


def get_expense(expense_id: int) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def create_expense(*, patch: dict, actor_user_id: int | None = None) -> Expense:
    enforce_rules_expense(patch)

    fields = {k: v for k, v in patch.items() if k in EXPENSE_MUTABLE_FIELDS}
    if not fields.get("expense_date"):
        fields["expense_date"] = date.today()

    expense = Expense(created_by_user_id=actor_user_id, **fields)
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(*, expense_id: int, patch: dict) -> Expense:
    enforce_rules_expense(patch)

    expense = get_expense(expense_id)
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, k, v)
    db.session.commit()
    return expense


def delete_expense(*, expense_id: int) -> None:
    expense = get_expense(expense_id)
    db.session.delete(expense)
    db.session.commit()
