from sqlalchemy import Column, String, Boolean, DateTime, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import NamedTuple
from decimal import Decimal
import uuid
import enum

from vendor_sales.core.database import Base


class CommissionType(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class CommissionPolicy(NamedTuple):
    commission_type: str
    value: Decimal


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)

    # Plain string so a corrupt policy type can be loaded and reported
    commission_type = Column(String(20), nullable=False, default=CommissionType.FIXED.value)
    # Currency amount for fixed, 0-100 for percentage
    commission_value = Column(Numeric(12, 4), nullable=False, default=0)

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sales = relationship("Sale", back_populates="product")
    commissions = relationship("Commission", back_populates="product")

    @property
    def policy(self) -> CommissionPolicy:
        return CommissionPolicy(self.commission_type, self.commission_value)
