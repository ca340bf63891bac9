from .tenancy import Tenant, DocumentSequence
from .auth import User, SessionToken
from .catalog import Product, ProductVariant
from .ledger import StockMovement, MovementDirection, MovementReason, ReferenceType, ImmutableMovementError
from .orders import SalesOrder, SalesOrderLine, OrderStatus
from .purchasing import Vendor, PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatus

__all__ = [
    'Tenant', 'DocumentSequence',
    'User', 'SessionToken',
    'Product', 'ProductVariant',
    'StockMovement', 'MovementDirection', 'MovementReason', 'ReferenceType', 'ImmutableMovementError',
    'SalesOrder', 'SalesOrderLine', 'OrderStatus',
    'Vendor', 'PurchaseOrder', 'PurchaseOrderLine', 'PurchaseOrderStatus',
]
