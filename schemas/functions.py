from pydantic import BaseModel
from typing import Optional


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    fullName: Optional[str] = None


class DemoDataRequest(BaseModel):
    action: Optional[str] = None
