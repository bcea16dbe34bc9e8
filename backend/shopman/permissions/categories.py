# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    CUSTOMERS = "CUSTOMERS"
    PURCHASING = "PURCHASING"
    FINANCE = "FINANCE"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
