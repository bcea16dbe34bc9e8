# Overview: Permission system package.
# Re-exports all public APIs for package-level imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    PURCHASING_PERMISSIONS,
    FINANCE_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import ADMIN_ROLE, USER_ROLE, DEFAULT_ROLE_DESCRIPTIONS, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "PURCHASING_PERMISSIONS",
    "FINANCE_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "ADMIN_ROLE",
    "USER_ROLE",
    "DEFAULT_ROLE_DESCRIPTIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "validate_permission_code",
]
