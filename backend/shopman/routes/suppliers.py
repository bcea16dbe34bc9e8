# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..models import Supplier
from ..services import supplier_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError
from ..decorators import require_auth, require_permission

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_phone", "contact_email", "company", "address"},
    required_on_create={"name", "contact_phone"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def list_suppliers():
    return supplier_service.list_suppliers(
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def get_supplier(supplier_id: int):
    try:
        return supplier_service.get_supplier(supplier_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.get("/<int:supplier_id>/purchase-orders")
@require_auth
@require_permission("VIEW_SUPPLIERS")
def supplier_purchase_orders(supplier_id: int):
    try:
        orders = supplier_service.supplier_purchase_orders(supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": [po.to_dict() for po in orders], "count": len(orders)}


@suppliers_bp.post("")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def create_supplier():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return supplier_service.create_supplier(patch=patch).to_dict(), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def update_supplier(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(supplier_id=supplier_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return supplier.to_dict()


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("MANAGE_SUPPLIERS")
def delete_supplier(supplier_id: int):
    """Deletes the supplier's purchase orders with it."""
    try:
        supplier_service.delete_supplier(supplier_id=supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
