from sqlalchemy import Column, String, Integer, Date, DateTime, Numeric, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from vendor_sales.core.database import Base


class PaymentType(str, enum.Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class PaymentBatchStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentBatch(Base):
    __tablename__ = "payment_batches"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    batch_code = Column(String(20), unique=True, nullable=False, index=True)  # PB-YYYYMMDD-NNN

    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    payment_type = Column(SQLEnum(PaymentType), nullable=True)

    total_vendors = Column(Integer, nullable=False, default=0)
    # Sum of commission_amount over the commissions claimed by this batch
    total_amount = Column(Numeric(14, 4), nullable=False, default=0)

    status = Column(SQLEnum(PaymentBatchStatus), nullable=False, default=PaymentBatchStatus.PENDING)
    failure_reason = Column(Text, nullable=True)

    completed_at = Column(DateTime, nullable=True)

    created_by = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    commissions = relationship("Commission", back_populates="payment_batch")
