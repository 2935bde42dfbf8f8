from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from vendor_sales.core.database import Base


class CommissionStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"


class Commission(Base):
    __tablename__ = "commissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_id = Column(String, ForeignKey("sales.id"), unique=True, nullable=False)
    vendor_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)

    base_amount = Column(Numeric(12, 2), nullable=False)
    # Extra scale keeps percentage results unrounded to the cent
    commission_amount = Column(Numeric(14, 4), nullable=False)

    status = Column(SQLEnum(CommissionStatus), nullable=False, default=CommissionStatus.PENDING, index=True)

    # Payment
    payment_batch_id = Column(String, ForeignKey("payment_batches.id"), nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sale = relationship("Sale", back_populates="commission")
    vendor = relationship("User", back_populates="commissions")
    product = relationship("Product", back_populates="commissions")
    payment_batch = relationship("PaymentBatch", back_populates="commissions")
