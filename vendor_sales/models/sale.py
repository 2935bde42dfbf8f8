from sqlalchemy import Column, String, Date, DateTime, Numeric, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from vendor_sales.core.database import Base


class SaleStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SaleChannel(str, enum.Enum):
    ONLINE = "Online"
    STORE = "Tienda Fisica"
    MARKETPLACE = "Marketplace"
    PHONE = "Venta Telefonica"


class Sale(Base):
    __tablename__ = "sales"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    sale_code = Column(String(20), unique=True, nullable=False, index=True)  # VT-YYYYMMDD-NNN

    vendor_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)

    imei = Column(String(15), nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False)
    channel = Column(String(50), nullable=False)
    sale_date = Column(Date, nullable=False, index=True)

    risk_level = Column(SQLEnum(RiskLevel), nullable=True)
    status = Column(SQLEnum(SaleStatus), nullable=False, default=SaleStatus.PENDING, index=True)

    evidence_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    # Set only by the admin decision
    validated_by = Column(String, ForeignKey("users.id"), nullable=True)
    validated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    vendor = relationship("User", back_populates="sales", foreign_keys=[vendor_id])
    validator = relationship("User", foreign_keys=[validated_by])
    product = relationship("Product", back_populates="sales")
    commission = relationship("Commission", back_populates="sale", uselist=False)
