# Overview: Default role-to-permission mappings.

from .definitions import PERMISSION_DEFINITIONS


ADMIN_ROLE = "admin"
USER_ROLE = "user"

DEFAULT_ROLE_DESCRIPTIONS = {
    ADMIN_ROLE: "Shop administrator (full access)",
    USER_ROLE: "Standard account (own profile only)",
}

# admin: everything; user: read/edit own profile and see own roles.
DEFAULT_ROLE_PERMISSIONS = {
    ADMIN_ROLE: [perm[0] for perm in PERMISSION_DEFINITIONS],
    USER_ROLE: [
        "VIEW_OWN_PROFILE",
    ],
}
