from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from vendor_sales.models.payment_batch import PaymentBatchStatus, PaymentType


class PaymentBatchCreate(BaseModel):
    commission_ids: List[str] = Field(default_factory=list)
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    payment_type: Optional[PaymentType] = None


class PaymentBatchFail(BaseModel):
    reason: str


class PaymentBatchResponse(BaseModel):
    id: str
    batch_code: str
    period_start: date
    period_end: date
    payment_type: Optional[PaymentType] = None
    total_vendors: int
    total_amount: Decimal
    status: PaymentBatchStatus
    failure_reason: Optional[str] = None
    created_by: str
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
