from vendor_sales.models.user import User, UserRole
from vendor_sales.models.product import Product, CommissionType, CommissionPolicy
from vendor_sales.models.sale import Sale, SaleStatus, RiskLevel, SaleChannel
from vendor_sales.models.commission import Commission, CommissionStatus
from vendor_sales.models.payment_batch import PaymentBatch, PaymentBatchStatus, PaymentType
from vendor_sales.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Product",
    "CommissionType",
    "CommissionPolicy",
    "Sale",
    "SaleStatus",
    "RiskLevel",
    "SaleChannel",
    "Commission",
    "CommissionStatus",
    "PaymentBatch",
    "PaymentBatchStatus",
    "PaymentType",
    "AuditLog",
]
