from .auth import User, Profile, Role, UserRole, Permission, RolePermission, SessionToken
from .security import SecurityEvent
from .catalog import Category, Product
from .inventory import ProductVariant, StockLog, STOCK_LOG_TYPES
from .sales import Customer, Sale, SaleItem, Return, ReturnItem, Credit
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderItem
from .finance import Expense
from .settings import ShopSettings
from .documents import DocumentSequence

__all__ = [
    'User', 'Profile', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'SecurityEvent',
    'Category', 'Product',
    'ProductVariant', 'StockLog', 'STOCK_LOG_TYPES',
    'Customer', 'Sale', 'SaleItem', 'Return', 'ReturnItem', 'Credit',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderItem',
    'Expense',
    'ShopSettings',
    'DocumentSequence',
]
