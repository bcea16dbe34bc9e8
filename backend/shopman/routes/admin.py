# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

"""
Admin routes for user and role management.

Provides endpoints for:
- User listing with role names
- Role assignment (admin / user)
- Permission catalog with the roles that hold each permission

All endpoints require authentication and MANAGE_USERS.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Permission, Role, RolePermission
from ..services import auth_service, session_service, permission_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_permission
from ..permissions import PERMISSION_DEFINITIONS, get_permissions_by_category

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# USER MANAGEMENT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_permission("MANAGE_USERS")
def list_users():
    """List all users with their roles."""
    result = []
    for user in auth_service.list_users():
        user_dict = user.to_dict()
        user_dict["roles"] = permission_service.get_user_role_names(user.id)
        result.append(user_dict)

    return jsonify({"users": result, "count": len(result)})


@admin_bp.put("/users/<int:user_id>/role")
@require_auth
@require_permission("MANAGE_USERS")
def set_user_role(user_id: int):
    """
    Replace a user's role.

    Request body:
    - role: "admin" | "user"

    The user's existing sessions are revoked so the next request
    authenticates against the new role.
    """
    data = request.get_json(silent=True) or {}
    role_name = data.get("role")
    if not role_name or not isinstance(role_name, str):
        return jsonify({"error": "role required"}), 400

    try:
        user = auth_service.set_user_role(user_id, role_name)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to set user role")
        return jsonify({"error": "Internal server error"}), 500

    if user.id != g.current_user.id:
        session_service.revoke_all_user_sessions(user.id, reason=f"Role changed to {role_name}")

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="ROLE_ASSIGNED",
        success=True,
        resource=request.path,
        action=role_name,
        reason=f"User {user.id} set to {role_name}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )

    user_dict = user.to_dict()
    user_dict["roles"] = permission_service.get_user_role_names(user.id)
    return jsonify({"user": user_dict})


# =============================================================================
# PERMISSIONS
# =============================================================================

@admin_bp.get("/permissions")
@require_auth
@require_permission("MANAGE_USERS")
def list_permissions():
    """All permissions grouped by category, each with the roles that hold it."""
    grants: dict[str, list[str]] = {}
    rows = (
        db.session.query(Permission.code, Role.name)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .order_by(Role.name)
        .all()
    )
    for code, role_name in rows:
        grants.setdefault(code, []).append(role_name)

    categories = {}
    for category in dict.fromkeys(perm[3] for perm in PERMISSION_DEFINITIONS):
        categories[category] = [
            {
                "code": code,
                "name": name,
                "description": description,
                "roles": grants.get(code, []),
            }
            for code, name, description, _ in get_permissions_by_category(category)
        ]

    return jsonify({"categories": categories})
