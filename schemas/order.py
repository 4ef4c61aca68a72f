from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal

from models.order import OrderStatus


class OrderItemCreate(BaseModel):
    particular: str = Field(..., min_length=1, max_length=255)
    quantity: Decimal = Field(..., gt=0)
    quantity_unit: str = Field("Dzn", max_length=20)
    rate_per_dzn: Decimal = Field(Decimal("0.00"), ge=0)


class OrderItemResponse(OrderItemCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    serial_no: int
    total: Decimal


class DeductionCreate(BaseModel):
    material_name: str = Field(..., min_length=1, max_length=150)
    quantity: Decimal = Field(..., gt=0)
    rate: Decimal = Field(Decimal("0.00"), ge=0)


class DeductionResponse(DeductionCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: Decimal


class OrderCreate(BaseModel):
    party_id: Optional[str] = Field(None, description="Existing party")
    party_name: Optional[str] = Field(None, max_length=150, description="Creates a new party when no party_id is given")
    order_number: Optional[str] = Field(None, max_length=50, description="Custom order number")
    order_date: Optional[date] = None
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    items: List[OrderItemCreate] = Field(default_factory=list)
    deductions: List[DeductionCreate] = Field(default_factory=list)


class OrderUpdate(BaseModel):
    party_id: Optional[str] = None
    order_date: Optional[date] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    order_date: date
    subtotal: Decimal
    deduction_total: Decimal
    net_total: Decimal
    status: OrderStatus
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []
    deductions: List[DeductionResponse] = []


class OrderListResponse(BaseModel):
    message: str
    data: List[OrderResponse]


class OrderSingleResponse(BaseModel):
    message: str
    data: OrderResponse
    unposted_materials: List[str] = []
