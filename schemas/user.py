from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from models.user import UserRole, UserStatus

# Request schemas
class UserCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = Field(None, max_length=150)
    role: UserRole = UserRole.USER

class UserRoleUpdate(BaseModel):
    role: UserRole

class UserLogin(BaseModel):
    email: str
    password: str

# Response schemas
class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str]
    role: UserRole
    status: UserStatus
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str
