from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from vendor_sales.models.commission import CommissionStatus


class CommissionBase(BaseModel):
    sale_id: str
    vendor_id: str
    product_id: str
    base_amount: Decimal
    commission_amount: Decimal


class CommissionResponse(CommissionBase):
    id: str
    status: CommissionStatus
    payment_batch_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class VendorCommissionGroup(BaseModel):
    vendor_id: str
    vendor_name: Optional[str] = None
    vendor_code: Optional[str] = None
    bank_account: Optional[str] = None
    commissions: List[CommissionResponse] = []
    total: Decimal = Decimal("0")


class VendorCommissionSummary(BaseModel):
    vendor_id: str
    pending: Decimal = Decimal("0")
    processing: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    total_earned: Decimal = Decimal("0")
    count: int = 0


class CommissionSimulation(BaseModel):
    product_id: str
    base_amount: Decimal = Field(..., ge=0)


class CommissionSimulationResult(BaseModel):
    product_id: str
    product_name: str
    base_amount: Decimal
    commission_amount: Decimal
    commission_type: str
    commission_value: Decimal


class RecalculationResult(BaseModel):
    examined: int = 0
    recalculated: int = 0


class VendorDashboard(BaseModel):
    vendor_id: str
    total_sales: int = 0
    pending_sales: int = 0
    month_sales: int = 0
    total_earned: Decimal = Decimal("0")
    pending_commissions: Decimal = Decimal("0")
    paid_commissions: Decimal = Decimal("0")
    recent_commissions: List[CommissionResponse] = []


class AdminDashboard(BaseModel):
    active_vendors: int = 0
    pending_sales: int = 0
    month_revenue: Decimal = Decimal("0")
    pending_commissions: Decimal = Decimal("0")
