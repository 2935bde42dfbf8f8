from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal

from vendor_sales.models.product import CommissionType


def _check_policy(commission_type: Optional[CommissionType], commission_value: Optional[Decimal]) -> None:
    if commission_type == CommissionType.PERCENTAGE and commission_value is not None and commission_value > 100:
        raise ValueError("Percentage commission must be between 0 and 100")


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    commission_type: CommissionType
    commission_value: Decimal = Field(..., ge=0, decimal_places=4)

    @model_validator(mode="after")
    def validate_policy(self):
        _check_policy(self.commission_type, self.commission_value)
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    commission_type: Optional[CommissionType] = None
    commission_value: Optional[Decimal] = Field(None, ge=0, decimal_places=4)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def validate_policy(self):
        _check_policy(self.commission_type, self.commission_value)
        return self


class ProductResponse(BaseModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Decimal] = None
    commission_type: str
    commission_value: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
