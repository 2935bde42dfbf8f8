from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import get_current_actor, require_role
from vendor_sales.models.sale import SaleStatus
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.inventory import InventoryCheckRequest, InventoryCheckResponse
from vendor_sales.schemas.sale import (
    RejectSaleRequest,
    RiskAssessmentResponse,
    SaleCreate,
    SaleResponse,
    SaleSubmissionResponse
)
from vendor_sales.services.inventory_service import InventoryClient, get_inventory_client
from vendor_sales.services.sale_service import SaleService
from vendor_sales.services.validation_service import ValidationService

router = APIRouter()


@router.post("/", response_model=SaleSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_sale(
    sale_data: SaleCreate,
    current_actor: Actor = Depends(require_role(UserRole.VENDOR)),
    inventory_client: InventoryClient = Depends(get_inventory_client),
    db: Session = Depends(get_db)
):
    """Submit a sale for validation (vendor only)"""
    sale, assessment = SaleService.submit_sale(db, current_actor, sale_data, inventory_client)
    return SaleSubmissionResponse(
        sale=SaleResponse.model_validate(sale),
        risk=RiskAssessmentResponse.model_validate(assessment)
    )


@router.post("/inventory-check", response_model=InventoryCheckResponse)
async def check_inventory(
    request: InventoryCheckRequest,
    current_actor: Actor = Depends(get_current_actor),
    inventory_client: InventoryClient = Depends(get_inventory_client)
):
    """Look an IMEI up in inventory before submitting the sale"""
    return SaleService.check_inventory(current_actor, request.imei, inventory_client)


@router.get("/", response_model=List[SaleResponse])
async def list_sales(
    status: Optional[SaleStatus] = None,
    vendor_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 20,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """List sales (vendors only see their own)"""
    return SaleService.list_sales(
        db=db,
        actor=current_actor,
        status=status,
        vendor_id=vendor_id,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit
    )


@router.get("/pending", response_model=List[SaleResponse])
async def list_pending_sales(
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Validation queue, oldest first (admin only)"""
    return SaleService.list_pending_sales(db, current_actor)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: str,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    return SaleService.get_sale(db, current_actor, sale_id)


@router.post("/{sale_id}/approve", response_model=SaleResponse)
async def approve_sale(
    sale_id: str,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Approve a pending sale and create its commission (admin only)"""
    return ValidationService.approve_sale(db, current_actor, sale_id)


@router.post("/{sale_id}/reject", response_model=SaleResponse)
async def reject_sale(
    sale_id: str,
    request: RejectSaleRequest,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Reject a pending sale (admin only)"""
    return ValidationService.reject_sale(db, current_actor, sale_id, request.reason)


@router.post("/{sale_id}/rescore", response_model=SaleSubmissionResponse)
async def rescore_sale(
    sale_id: str,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    inventory_client: InventoryClient = Depends(get_inventory_client),
    db: Session = Depends(get_db)
):
    """Recompute the risk level of a pending sale (admin only)"""
    sale, assessment = SaleService.rescore_sale(db, current_actor, sale_id, inventory_client)
    return SaleSubmissionResponse(
        sale=SaleResponse.model_validate(sale),
        risk=RiskAssessmentResponse.model_validate(assessment)
    )
