from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import get_current_actor, require_role
from vendor_sales.schemas.commission import (
    AdminDashboard,
    CommissionResponse,
    CommissionSimulation,
    CommissionSimulationResult,
    RecalculationResult,
    VendorCommissionGroup,
    VendorCommissionSummary,
    VendorDashboard
)
from vendor_sales.models.commission import CommissionStatus
from vendor_sales.models.user import UserRole
from vendor_sales.services.commission_service import CommissionService

router = APIRouter()


@router.get("/", response_model=List[CommissionResponse])
async def list_commissions(
    vendor_id: Optional[str] = None,
    status: Optional[CommissionStatus] = None,
    skip: int = 0,
    limit: int = 20,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """List commissions"""
    return CommissionService.list_commissions(
        db=db,
        actor=current_actor,
        vendor_id=vendor_id,
        status=status,
        skip=skip,
        limit=limit
    )


@router.get("/summary", response_model=VendorCommissionSummary)
async def get_commission_summary(
    vendor_id: Optional[str] = None,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Pending / paid totals for a vendor (defaults to the caller)"""
    return CommissionService.get_vendor_summary(db, current_actor, vendor_id or current_actor.user_id)


@router.get("/dashboard", response_model=VendorDashboard)
async def get_commission_dashboard(
    current_actor: Actor = Depends(require_role(UserRole.VENDOR)),
    db: Session = Depends(get_db)
):
    """Get the caller's sales and commission dashboard data"""
    return CommissionService.get_dashboard_data(db, current_actor)


@router.get("/dashboard/admin", response_model=AdminDashboard)
async def get_admin_dashboard(
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Platform-wide figures for the admin dashboard"""
    return CommissionService.get_admin_dashboard(db, current_actor)


@router.get("/pending-by-vendor",response_model=List[VendorCommissionGroup])
async def get_pending_by_vendor(
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Unclaimed commissions grouped by vendor, ready for a payment batch"""
    return CommissionService.get_pending_by_vendor(db, current_actor)


@router.post("/simulate", response_model=CommissionSimulationResult)
async def simulate_commission(
    simulation: CommissionSimulation,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Simulate commission calculation"""
    return CommissionService.simulate_commission(
        db=db,
        product_id=simulation.product_id,
        base_amount=simulation.base_amount
    )


@router.post("/recalculate", response_model=RecalculationResult)
async def recalculate_commissions(
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Re-derive unclaimed commissions from current product policies (admin only)"""
    return CommissionService.recalculate_commissions(db, current_actor)


@router.get("/vendors/{vendor_id}", response_model=List[CommissionResponse])
async def list_vendor_commissions(
    vendor_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """A vendor's full ledger, newest first"""
    return CommissionService.list_vendor_commissions(db, current_actor, vendor_id)


@router.get("/{commission_id}", response_model=CommissionResponse)
async def get_commission(
    commission_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return CommissionService.get_commission(db, current_actor, commission_id)
