from .user import UserCreate, UserRoleUpdate, UserLogin, UserResponse, Token
from .party import PartyCreate, PartyUpdate, PartyResponse, PartyListResponse, PartySingleResponse
from .material import (
    MaterialCategoryCreate, MaterialCategoryResponse, UnitCreate, UnitResponse,
    MaterialCreate, MaterialUpdate, OpeningStockUpdate, MaterialResponse,
    MaterialListResponse, MaterialSingleResponse
)
from .order import (
    OrderItemCreate, OrderItemResponse, DeductionCreate, DeductionResponse,
    OrderCreate, OrderUpdate, OrderResponse, OrderListResponse, OrderSingleResponse
)
from .stock_ledger import (
    StockInCreate, StockOutCreate, StockTransactionResponse, LedgerRow,
    MaterialLedgerResponse, StockSummary, PartyMaterialSummary
)
from .functions import SignupRequest, DemoDataRequest

__all__ = [
    "UserCreate", "UserRoleUpdate", "UserLogin", "UserResponse", "Token",
    "PartyCreate", "PartyUpdate", "PartyResponse", "PartyListResponse", "PartySingleResponse",
    "MaterialCategoryCreate", "MaterialCategoryResponse", "UnitCreate", "UnitResponse",
    "MaterialCreate", "MaterialUpdate", "OpeningStockUpdate", "MaterialResponse",
    "MaterialListResponse", "MaterialSingleResponse",
    "OrderItemCreate", "OrderItemResponse", "DeductionCreate", "DeductionResponse",
    "OrderCreate", "OrderUpdate", "OrderResponse", "OrderListResponse", "OrderSingleResponse",
    "StockInCreate", "StockOutCreate", "StockTransactionResponse", "LedgerRow",
    "MaterialLedgerResponse", "StockSummary", "PartyMaterialSummary",
    "SignupRequest", "DemoDataRequest"
]
