from fastapi import APIRouter

from vendor_sales.api.v1.endpoints import sales, commissions, payments, products, vendors, reports, audit

api_router = APIRouter()

api_router.include_router(sales.router, prefix="/sales", tags=["Sales"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(vendors.router, prefix="/vendors", tags=["Vendors"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(audit.router, prefix="/audit", tags=["Audit"])
