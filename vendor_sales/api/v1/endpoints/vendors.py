from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import require_role
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.sale import VendorRiskProfile
from vendor_sales.schemas.user import UserResponse, VendorCreate
from vendor_sales.services.risk_service import RiskScorer
from vendor_sales.services.vendor_service import VendorService

router = APIRouter()


@router.get("/", response_model=List[UserResponse])
async def list_vendors(
    skip: int = 0,
    limit: int = 100,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    return VendorService.list_vendors(db, current_actor, skip=skip, limit=limit)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    vendor_data: VendorCreate,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Register a vendor and assign its VND code (admin only)"""
    return VendorService.create_vendor(db, current_actor, vendor_data)


@router.get("/{vendor_id}/risk-profile", response_model=VendorRiskProfile)
async def get_vendor_risk_profile(
    vendor_id: str,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Last 30 days of a vendor's submissions"""
    return RiskScorer(db).vendor_risk_profile(vendor_id)
