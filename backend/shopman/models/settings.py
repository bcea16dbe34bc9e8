from __future__ import annotations

from ..extensions import db
from shopman.time_utils import to_utc_z


class ShopSettings(db.Model):
    """
    Shop-wide settings. At most one row.

    tax_rate_bps is the single source of truth for checkout tax
    (500 bps = 5%).
    """
    __tablename__ = "shop_settings"
    __table_args__ = (
        db.CheckConstraint("tax_rate_bps >= 0 AND tax_rate_bps <= 10000", name="ck_shop_settings_tax_rate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_name = db.Column(db.String(255), nullable=False, default="ShopManager")
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=500)

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
            "shop_name": self.shop_name,
            "tax_rate_bps": self.tax_rate_bps,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
