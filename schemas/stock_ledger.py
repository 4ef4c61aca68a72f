from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from models.stock_ledger import StockInSource, StockOutReason


class StockMovementBase(BaseModel):
    material_id: str = Field(..., description="Material ID reference")
    quantity: Decimal = Field(..., gt=0, description="Quantity moved")
    transaction_date: Optional[date] = Field(None, description="Transaction date, today when omitted")
    rate: Decimal = Field(Decimal("0.00"), ge=0, description="Rate for this transaction")
    remarks: Optional[str] = None


class StockInCreate(StockMovementBase):
    source_type: StockInSource = Field(..., description="Where the stock came from")
    party_id: Optional[str] = Field(None, description="Supplying party, required for party supply")


class StockOutCreate(StockMovementBase):
    reason_type: StockOutReason = Field(..., description="Why the stock left")
    order_number: Optional[str] = Field(None, max_length=50)


class StockTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    material_id: str
    material_name: Optional[str] = None
    transaction_type: str
    quantity: Decimal
    transaction_date: date
    balance_after: Optional[Decimal] = None
    source_type: Optional[str] = None
    reason_type: Optional[str] = None
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    rate: Optional[Decimal] = None
    remarks: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class LedgerRow(StockTransactionResponse):
    """Ledger entry with the balance recomputed from the material's opening stock."""
    balance: Decimal


class MaterialLedgerResponse(BaseModel):
    material_id: str
    material_name: str
    unit: str
    opening_stock: Decimal
    current_stock: Decimal
    entries: list[LedgerRow]


class StockSummary(BaseModel):
    """Stock movement of one material over a period"""
    material_id: str
    material_name: str
    category_name: Optional[str] = None
    unit: str
    opening_stock: Decimal = Field(Decimal("0.00"), description="Opening stock of the material")
    total_in: Decimal = Field(Decimal("0.00"), description="Total inward quantity")
    total_out: Decimal = Field(Decimal("0.00"), description="Total outward quantity")
    closing_stock: Decimal = Field(Decimal("0.00"), description="Current stock balance")


class PartyMaterialSummary(BaseModel):
    """Material supplied by a party against what its orders used"""
    party_id: str
    party_name: str
    material_id: str
    material_name: str
    unit: str
    received: Decimal = Decimal("0.00")
    used: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")
