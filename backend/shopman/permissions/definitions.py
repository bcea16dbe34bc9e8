# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View products, categories and product lookups",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit, delete and bulk edit products",
        PermissionCategory.CATALOG,
    ),
    (
        "IMPORT_PRODUCTS",
        "Import Products",
        "Import product rows in bulk",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_CATEGORIES",
        "Manage Categories",
        "Create, rename and delete product categories",
        PermissionCategory.CATALOG,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels and stock history",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Add, remove or set variant stock (manual adjustment)",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_VARIANTS",
        "Manage Variants",
        "Create, edit and delete product variants",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Check out a cart at the point of sale",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales and their line items",
        PermissionCategory.SALES,
    ),
    (
        "PROCESS_RETURN",
        "Process Return",
        "Create, process and reject returns",
        PermissionCategory.SALES,
    ),
    (
        "MANAGE_CREDITS",
        "Manage Credits",
        "View credit balances and record credit payments",
        PermissionCategory.SALES,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View customers and purchase history",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create, edit and delete customers",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- PURCHASING --

PURCHASING_PERMISSIONS = [
    (
        "VIEW_SUPPLIERS",
        "View Suppliers",
        "View suppliers and purchase orders",
        PermissionCategory.PURCHASING,
    ),
    (
        "MANAGE_SUPPLIERS",
        "Manage Suppliers",
        "Create, edit and delete suppliers",
        PermissionCategory.PURCHASING,
    ),
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Create, update and delete purchase orders",
        PermissionCategory.PURCHASING,
    ),
    (
        "RECEIVE_PURCHASE_ORDERS",
        "Receive Purchase Orders",
        "Receive purchase orders into stock",
        PermissionCategory.PURCHASING,
    ),
]


# -- FINANCE --

FINANCE_PERMISSIONS = [
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record, edit and delete expenses",
        PermissionCategory.FINANCE,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_OWN_PROFILE",
        "View Own Profile",
        "Read and edit own profile and see own roles",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "List users, assign roles and view permissions",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Change shop name and tax rate",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + PURCHASING_PERMISSIONS
    + FINANCE_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
