# Overview: Service-layer operations for credits; encapsulates business logic and database work.

"""
Credit Service

A Credit is opened by a checkout paid on credit. Payments reduce the
outstanding balance; the linked sale's payment_status follows:

    credit pending/overdue, partially paid -> sale "partial"
    credit fully paid                      -> sale "paid"

amount_paid_cents never exceeds amount_due_cents.
"""
from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Credit, Sale
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry
from .pagination import paginate

CREDIT_STATUSES = ("pending", "paid", "overdue")


def get_credit(credit_id: int) -> Credit:
    credit = db.session.get(Credit, credit_id)
    if not credit:
        raise NotFoundError("Credit not found")
    return credit


def list_credits(*, status: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    if status is not None and status not in CREDIT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(CREDIT_STATUSES)}")

    q = db.session.query(Credit)
    if status:
        q = q.filter(Credit.status == status)
    q = q.order_by(Credit.created_at.desc(), Credit.id.desc())
    return paginate(q, page=page, per_page=per_page)


def record_payment(*, credit_id: int, amount_cents: int, actor_user_id: int | None = None) -> Credit:
    """
    Apply a payment to a credit.

    Raises:
        ValidationError: amount not a positive integer or above the outstanding balance
        ConflictError: credit already paid
        NotFoundError: unknown credit
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ValidationError("amount_cents must be a positive integer")

    def _op() -> Credit:
        credit = lock_for_update(db.session.query(Credit).filter(Credit.id == credit_id)).first()
        if not credit:
            raise NotFoundError("Credit not found")
        if credit.status == "paid":
            raise ConflictError("Credit is already paid")
        if amount_cents > credit.outstanding_cents:
            raise ValidationError(
                f"Payment exceeds outstanding balance of {credit.outstanding_cents} cents"
            )

        credit.amount_paid_cents = credit.amount_paid_cents + amount_cents
        settled = credit.amount_paid_cents == credit.amount_due_cents
        if settled:
            credit.status = "paid"

        sale = db.session.get(Sale, credit.sale_id)
        if sale:
            sale.payment_status = "paid" if settled else "partial"

        db.session.commit()
        return credit

    try:
        credit = run_with_retry(_op)
    except (NotFoundError, ConflictError, ValidationError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Credit %s payment amount_cents=%s outstanding=%s user=%s",
        credit.id, amount_cents, credit.outstanding_cents, actor_user_id,
    )
    return credit


def mark_overdue(*, today: date | None = None) -> int:
    """Flag unpaid credits whose due date has passed. Returns the number updated."""
    today = today or date.today()

    def _op() -> int:
        credits = (
            db.session.query(Credit)
            .filter(
                Credit.status == "pending",
                Credit.due_date.isnot(None),
                Credit.due_date < today,
            )
            .all()
        )
        for credit in credits:
            credit.status = "overdue"
        db.session.commit()
        return len(credits)

    updated = run_with_retry(_op)
    if updated:
        current_app.logger.info("Marked %d credits overdue", updated)
    return updated
