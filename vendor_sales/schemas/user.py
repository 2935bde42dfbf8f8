from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from vendor_sales.models.user import UserRole


class VendorCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = None
    bank_account: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    name: str
    role: UserRole
    vendor_code: Optional[str] = None
    bank_account: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
