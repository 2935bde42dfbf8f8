from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import get_current_actor, require_role
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.payment_batch import PaymentBatchCreate, PaymentBatchFail, PaymentBatchResponse
from vendor_sales.services.payment_service import PaymentService
from vendor_sales.services.report_service import ReportService

router = APIRouter()


@router.get("/batches", response_model=List[PaymentBatchResponse])
async def list_batches(
    skip: int = 0,
    limit: int = 20,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """List payment batches (admin only)"""
    return PaymentService.list_batches(db, current_actor, skip=skip, limit=limit)


@router.post("/batches", response_model=PaymentBatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    batch_data: PaymentBatchCreate,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Settle the selected commissions into a new payment batch (admin only)"""
    return PaymentService.create_batch(
        db=db,
        actor=current_actor,
        commission_ids=batch_data.commission_ids,
        period_start=batch_data.period_start,
        period_end=batch_data.period_end,
        payment_type=batch_data.payment_type
    )


@router.get("/vendor-batches", response_model=List[PaymentBatchResponse])
async def list_vendor_batches(
    vendor_id: Optional[str] = None,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Batches containing a vendor's commissions (defaults to the caller)"""
    return PaymentService.list_vendor_batches(db, current_actor, vendor_id or current_actor.user_id)


@router.get("/batches/{batch_id}", response_model=PaymentBatchResponse)
async def get_batch(
    batch_id: str,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    return PaymentService.get_batch(db, current_actor, batch_id)


@router.post("/batches/{batch_id}/complete", response_model=PaymentBatchResponse)
async def complete_batch(
    batch_id: str,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Mark a batch as paid out (admin only)"""
    return PaymentService.complete_batch(db, current_actor, batch_id)


@router.post("/batches/{batch_id}/fail", response_model=PaymentBatchResponse)
async def fail_batch(
    batch_id: str,
    request: PaymentBatchFail,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    return PaymentService.fail_batch(db, current_actor, batch_id, request.reason)


@router.get("/batches/{batch_id}/export")
async def export_batch(
    batch_id: str,
    format: str = "csv",
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Bank transfer sheet, one line per vendor"""
    format = ReportService.normalize_format(format)
    result = ReportService.export_batch_payouts(db, current_actor, batch_id, format=format)
    if format == "csv":
        batch = PaymentService.get_batch(db, current_actor, batch_id)
        return Response(
            content=result,
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={batch.batch_code}.csv"}
        )
    return {"payouts": result}
