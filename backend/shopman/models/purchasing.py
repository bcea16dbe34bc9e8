from __future__ import annotations

from ..extensions import db
from shopman.time_utils import to_utc_z


class Supplier(db.Model):
    """Vendor contact record. Deleting a supplier deletes its purchase orders."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_phone = db.Column(db.String(64), nullable=False)
    contact_email = db.Column(db.String(255), nullable=True)
    company = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

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
            "name": self.name,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "company": self.company,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Purchase order to a supplier.

    STATUS:     pending -> received | cancelled
    PAYMENT:    pending | partial | paid (tracked independently of receiving)

    total_cents is always the sum of the items' line totals.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'received', 'cancelled')", name="ck_purchase_orders_status"),
        db.CheckConstraint(
            "payment_status IN ('pending', 'partial', 'paid')",
            name="ck_purchase_orders_payment_status",
        ),
        db.Index("ix_purchase_orders_supplier_date", "supplier_id", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "PO-000007")
    po_number = db.Column(db.String(64), nullable=False, unique=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False)

    total_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    order_date = db.Column(db.Date, nullable=False, server_default=db.func.current_date())

    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship(
        "Supplier",
        backref=db.backref("purchase_orders", lazy=True, passive_deletes=True, order_by="PurchaseOrder.id.desc()"),
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "po_number": self.po_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    """Line item on a purchase order (cost price, not sell price)."""
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_po_items_quantity_positive"),
        db.CheckConstraint("cost_cents >= 0", name="ck_po_items_cost_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)

    item_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    purchase_order = db.relationship(
        "PurchaseOrder",
        backref=db.backref("items", lazy=True, passive_deletes=True, order_by="PurchaseOrderItem.id"),
    )
    product = db.relationship("Product", backref=db.backref("po_items", lazy=True, passive_deletes=True))
    variant = db.relationship("ProductVariant", backref=db.backref("po_items", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "po_id": self.po_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "cost_cents": self.cost_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }
