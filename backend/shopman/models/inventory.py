from __future__ import annotations

from ..extensions import db
from shopman.time_utils import to_utc_z


STOCK_LOG_TYPES = (
    "in",
    "out",
    "sale",
    "return",
    "adjustment_in",
    "adjustment_out",
    "adjustment_set",
)


class ProductVariant(db.Model):
    """
    A size/color combination of a product with its own stock level.

    INVARIANT: quantity >= 0. Enforced by inventory_service before every write
    (and by a CHECK constraint as a backstop).

    min_quantity is the reorder threshold: quantity <= min_quantity is "low stock".
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", "color", name="uq_variants_product_size_color"),
        db.CheckConstraint("quantity >= 0", name="ck_variants_quantity_non_negative"),
        db.CheckConstraint("min_quantity >= 0", name="ck_variants_min_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    size = db.Column(db.String(50), nullable=True)
    color = db.Column(db.String(50), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_quantity = db.Column(db.Integer, nullable=False, default=5)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship(
        "Product",
        backref=db.backref("variants", lazy=True, passive_deletes=True, order_by="ProductVariant.id"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} product_id={self.product_id} qty={self.quantity}>"

    @property
    def label(self) -> str:
        parts = [p for p in (self.size, self.color) if p]
        return " / ".join(parts) if parts else "Default"

    @property
    def stock_status(self) -> str:
        if self.quantity == 0:
            return "out_of_stock"
        if self.quantity <= self.min_quantity:
            return "low_stock"
        return "in_stock"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "size": self.size,
            "color": self.color,
            "label": self.label,
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            "stock_status": self.stock_status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLog(db.Model):
    """
    Append-only record of a stock movement.

    quantity semantics per type:
    - in / out / sale / return / adjustment_in / adjustment_out: units moved
    - adjustment_set: the resulting on-hand quantity

    IMMUTABLE: rows are inserted in the same transaction as the quantity change
    they describe and are never updated or deleted by the application.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.CheckConstraint(
            "type IN ('in', 'out', 'sale', 'return', 'adjustment_in', 'adjustment_out', 'adjustment_set')",
            name="ck_stock_logs_type",
        ),
        db.Index("ix_stock_logs_product_created", "product_id", "created_at"),
        db.Index("ix_stock_logs_variant_created", "variant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = db.Column(
        db.Integer,
        db.ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(500), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("stock_logs", lazy=True, passive_deletes=True))
    variant = db.relationship("ProductVariant", backref=db.backref("stock_logs", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_sku": self.product.sku if self.product else None,
            "variant_id": self.variant_id,
            "variant_label": self.variant.label if self.variant else None,
            "type": self.type,
            "quantity": self.quantity,
            "note": self.note,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
