# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, Sale
from ..validation import NotFoundError
from .pagination import paginate

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address"}


def list_customers(*, search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    q = db.session.query(Customer)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(
            db.or_(
                Customer.name.ilike(term),
                Customer.phone.ilike(term),
                Customer.email.ilike(term),
            )
        )
    q = q.order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(q, page=page, per_page=per_page)


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(*, patch: dict) -> Customer:
    customer = Customer(**{k: v for k, v in patch.items() if k in CUSTOMER_MUTABLE_FIELDS})
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(*, customer_id: int, patch: dict) -> Customer:
    customer = get_customer(customer_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def delete_customer(*, customer_id: int) -> None:
    """Past sales keep their customer_name snapshot; their customer_id is cleared."""
    customer = get_customer(customer_id)
    db.session.delete(customer)
    db.session.commit()


def purchase_history(customer_id: int) -> dict:
    """The customer's sales, newest first, with the total spent across them."""
    customer = get_customer(customer_id)

    sales = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
    return {
        "customer": customer.to_dict(),
        "sales": [s.to_dict(include_items=True) for s in sales],
        "count": len(sales),
        "total_spent_cents": sum(s.total_cents for s in sales),
    }
