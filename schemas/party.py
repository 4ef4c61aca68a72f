from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class PartyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, description="Party name")
    prefix: Optional[str] = Field(None, max_length=10, description="Order number prefix, generated when empty")
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=150)
    notes: Optional[str] = None


class PartyCreate(PartyBase):
    pass


class PartyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    prefix: Optional[str] = Field(None, max_length=10)
    address: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=150)
    notes: Optional[str] = None


class PartyResponse(PartyBase):
    id: str
    last_order_number: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartyListResponse(BaseModel):
    message: str
    data: list[PartyResponse]


class PartySingleResponse(BaseModel):
    message: str
    data: PartyResponse
