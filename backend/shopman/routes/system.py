# Overview: Flask API routes for system operations; health check for deployment monitoring.

"""
System health endpoint.

Checks database connectivity and that access control has been seeded.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Permission, Role, User
from ..permissions import ADMIN_ROLE, USER_ROLE
from shopman.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        role_names = {name for (name,) in db.session.query(Role.name).all()}
        permission_count = db.session.query(Permission).count()

        elapsed_ms = (time.time() - start_time) * 1000

        missing_roles = [r for r in (ADMIN_ROLE, USER_ROLE) if r not in role_names]
        result = {
            "status": "degraded" if missing_roles or permission_count == 0 else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "permissions_initialized": permission_count > 0,
                "permission_count": permission_count,
            },
        }
        if missing_roles:
            result["warning"] = f"Missing roles: {', '.join(missing_roles)}"
        return result
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (roles/permissions not seeded yet)
    - 503: database unreachable
    """
    database_health = check_database_health()

    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        },
    }, http_status
