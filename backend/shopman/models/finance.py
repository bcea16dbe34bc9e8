from __future__ import annotations

from ..extensions import db
from shopman.time_utils import to_utc_z


class Expense(db.Model):
    """Operating expense (rent, utilities, wages, ...). Free-text category."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_expenses_amount_non_negative"),
        db.Index("ix_expenses_category_date", "category", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(100), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    expense_date = db.Column(db.Date, nullable=False, server_default=db.func.current_date(), index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "notes": self.notes,
            "expense_date": self.expense_date.isoformat() if self.expense_date else None,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
