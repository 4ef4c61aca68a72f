from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class MaterialCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class MaterialCategoryResponse(MaterialCategoryCreate):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UnitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)


class UnitResponse(UnitCreate):
    id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, description="Material name")
    category_id: Optional[str] = Field(None, description="Material category ID")
    unit: str = Field("Pcs", max_length=50, description="Unit of measure")
    rate: Decimal = Field(Decimal("0.00"), ge=0, description="Standard rate")
    min_stock: Decimal = Field(Decimal("0.00"), ge=0, description="Low stock threshold")
    notes: Optional[str] = None


class MaterialCreate(MaterialBase):
    opening_stock: Decimal = Field(Decimal("0.00"), ge=0, description="Stock on hand when the material is created")


class MaterialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    category_id: Optional[str] = None
    unit: Optional[str] = Field(None, max_length=50)
    rate: Optional[Decimal] = Field(None, ge=0)
    min_stock: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class OpeningStockUpdate(BaseModel):
    opening_stock: Decimal = Field(..., ge=0)


class MaterialResponse(MaterialBase):
    id: str
    opening_stock: Decimal
    current_stock: Decimal
    category_name: Optional[str] = None
    is_low_stock: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterialListResponse(BaseModel):
    message: str
    data: list[MaterialResponse]


class MaterialSingleResponse(BaseModel):
    message: str
    data: MaterialResponse
