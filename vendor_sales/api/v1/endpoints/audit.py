from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import require_role
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.audit import AuditLogResponse
from vendor_sales.services.audit_service import AuditService

router = APIRouter()


@router.get("/", response_model=List[AuditLogResponse])
async def list_audit_logs(
    actor_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 50,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Audit trail (admin only)"""
    return AuditService.list_logs(
        db=db,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit
    )
