from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from vendor_sales.models.sale import SaleStatus, RiskLevel, SaleChannel


class SaleCreate(BaseModel):
    product_id: str
    imei: str = Field(..., min_length=1, max_length=32)
    price: Decimal = Field(..., ge=0)
    channel: SaleChannel
    sale_date: Optional[date] = None
    evidence_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None


class SaleResponse(BaseModel):
    id: str
    sale_code: str
    vendor_id: str
    product_id: str
    imei: str
    price: Decimal
    channel: str
    sale_date: date
    risk_level: Optional[RiskLevel] = None
    status: SaleStatus
    evidence_url: Optional[str] = None
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RejectSaleRequest(BaseModel):
    reason: str


class RiskFactorsResponse(BaseModel):
    duplicate_imei: bool
    vendor_rejection_rate: float
    recent_rejections: int
    frequency_anomaly: bool
    inventory_mismatch: bool

    class Config:
        from_attributes = True


class RiskAssessmentResponse(BaseModel):
    score: int
    level: RiskLevel
    reasons: List[str]
    factors: RiskFactorsResponse
    degraded: bool
    failed_factors: List[str]

    class Config:
        from_attributes = True


class SaleSubmissionResponse(BaseModel):
    sale: SaleResponse
    risk: RiskAssessmentResponse


class VendorRiskProfile(BaseModel):
    total_sales: int
    rejected_count: int
    rejection_rate: float
    duplicate_attempts: int
    risk_level: RiskLevel
