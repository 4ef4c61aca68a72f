from .user import User, UserRole, UserStatus, UserRoleAssignment, STAFF_ROLES
from .party import Party
from .material import MaterialCategory, Unit, Material
from .order import Order, OrderItem, RawMaterialDeduction, OrderStatus
from .stock_ledger import (
    StockTransaction, TransactionType, StockInSource, StockOutReason,
    INWARD_TYPES, OUTWARD_TYPES
)
from database import Base

__all__ = [
    "User", "UserRole", "UserStatus", "UserRoleAssignment", "STAFF_ROLES", "Base",
    "Party", "MaterialCategory", "Unit", "Material",
    "Order", "OrderItem", "RawMaterialDeduction", "OrderStatus",
    "StockTransaction", "TransactionType", "StockInSource", "StockOutReason",
    "INWARD_TYPES", "OUTWARD_TYPES"
]
