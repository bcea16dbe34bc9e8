# Overview: Service-layer operations for shop settings; encapsulates business logic and database work.

"""
Shop Settings

A single row holding the shop name and tax rate. The row is created on first
read from the configured defaults (DEFAULT_SHOP_NAME, DEFAULT_TAX_RATE_BPS);
after that the stored row is the only source of the tax rate used at checkout.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ShopSettings
from ..validation import enforce_rules_shop_settings

SETTINGS_MUTABLE_FIELDS = {"shop_name", "tax_rate_bps"}


def get_settings() -> ShopSettings:
    settings = db.session.query(ShopSettings).order_by(ShopSettings.id.asc()).first()
    if settings is not None:
        return settings

    settings = ShopSettings(
        shop_name=current_app.config.get("DEFAULT_SHOP_NAME", "ShopManager"),
        tax_rate_bps=current_app.config.get("DEFAULT_TAX_RATE_BPS", 500),
    )
    db.session.add(settings)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return db.session.query(ShopSettings).order_by(ShopSettings.id.asc()).first()
    return settings


def get_tax_rate_bps() -> int:
    return get_settings().tax_rate_bps


def update_settings(*, patch: dict) -> ShopSettings:
    enforce_rules_shop_settings(patch)

    settings = get_settings()
    for k, v in patch.items():
        if k in SETTINGS_MUTABLE_FIELDS:
            setattr(settings, k, v)

    db.session.commit()
    current_app.logger.info("Shop settings updated: %s", ", ".join(sorted(patch)))
    return settings
