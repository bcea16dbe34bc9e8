# Overview: Flask API routes for shop settings; parses input and returns JSON responses.

from __future__ import annotations

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models import ShopSettings
from ..services import settings_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={"shop_name", "tax_rate_bps"},
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings():
    """Shop name and tax rate; readable by every signed-in account."""
    return settings_service.get_settings().to_dict()


@settings_bp.put("")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_settings():
    """Request body: {shop_name?, tax_rate_bps? (0..10000)}"""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ShopSettings, payload=payload, policy=SETTINGS_POLICY, partial=True)
        settings = settings_service.update_settings(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return settings.to_dict()
