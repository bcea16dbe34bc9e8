# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import PurchaseOrder, Supplier
from ..validation import NotFoundError
from .pagination import paginate

SUPPLIER_MUTABLE_FIELDS = {"name", "contact_phone", "contact_email", "company", "address"}


def list_suppliers(*, search: str | None = None, page: int | None = None, per_page: int | None = None) -> dict:
    q = db.session.query(Supplier)
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(Supplier.name.ilike(term), Supplier.company.ilike(term)))
    q = q.order_by(Supplier.name.asc(), Supplier.id.asc())
    return paginate(q, page=page, per_page=per_page)


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def create_supplier(*, patch: dict) -> Supplier:
    supplier = Supplier(**{k: v for k, v in patch.items() if k in SUPPLIER_MUTABLE_FIELDS})
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(*, supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)
    db.session.commit()
    return supplier


def delete_supplier(*, supplier_id: int) -> None:
    """Deletes the supplier's purchase orders with it (FK cascade)."""
    supplier = get_supplier(supplier_id)
    db.session.delete(supplier)
    db.session.commit()


def supplier_purchase_orders(supplier_id: int) -> list[PurchaseOrder]:
    get_supplier(supplier_id)
    return (
        db.session.query(PurchaseOrder)
        .filter(PurchaseOrder.supplier_id == supplier_id)
        .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
        .all()
    )
