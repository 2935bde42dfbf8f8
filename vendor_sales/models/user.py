from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from vendor_sales.core.database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    VENDOR = "vendor"


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.VENDOR)

    # VND-NNN, vendors only
    vendor_code = Column(String(20), unique=True, nullable=True, index=True)

    # Payout reference (account details live with the external profile store)
    bank_account = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)

    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    sales = relationship("Sale", back_populates="vendor", foreign_keys="Sale.vendor_id")
    commissions = relationship("Commission", back_populates="vendor")
    audit_logs = relationship("AuditLog", back_populates="actor")
