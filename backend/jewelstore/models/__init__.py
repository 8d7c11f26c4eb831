from .tenancy import Shop
from .auth import User, SessionToken
from .catalog import Supplier, Product, RateMaster
from .inventory import StockItem, TagSequence, PurchaseOrder, PurchaseOrderItem
from .sales import SalesOrder, SalesOrderLine, SalesPayment, Transaction
from .customers import Customer, FamilyMember
from .documents import DocumentSequence, AuditLog

__all__ = [
    'Shop',
    'User', 'SessionToken',
    'Supplier', 'Product', 'RateMaster',
    'StockItem', 'TagSequence', 'PurchaseOrder', 'PurchaseOrderItem',
    'SalesOrder', 'SalesOrderLine', 'SalesPayment', 'Transaction',
    'Customer', 'FamilyMember',
    'DocumentSequence', 'AuditLog',
]
