from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import get_current_actor
from vendor_sales.models.sale import SaleStatus
from vendor_sales.services.report_service import ReportService

router = APIRouter()


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.get("/commissions")
async def get_commission_report(
    vendor_id: Optional[str] = None,
    format: str = "json",
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get commission report"""
    format = ReportService.normalize_format(format)
    result = ReportService.export_commissions(db, current_actor, vendor_id=vendor_id, format=format)
    if format == "csv":
        return _csv_response(result, "commissions-report.csv")
    return {"commissions": result}


@router.get("/sales")
async def get_sales_report(
    status: Optional[SaleStatus] = None,
    vendor_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    format: str = "json",
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Get sales report"""
    format = ReportService.normalize_format(format)
    result = ReportService.export_sales(
        db=db,
        actor=current_actor,
        status=status,
        vendor_id=vendor_id,
        date_from=date_from,
        date_to=date_to,
        format=format
    )
    if format == "csv":
        return _csv_response(result, "sales-report.csv")
    return {"sales": result}
