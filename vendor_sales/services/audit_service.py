from sqlalchemy.orm import Session
from typing import Optional, Dict, Any, List
from datetime import datetime

from vendor_sales.core.actor import Actor
from vendor_sales.models.audit_log import AuditLog


class AuditService:
    @staticmethod
    def log_action(
        db: Session,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        actor: Optional[Actor] = None,
        changes: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        """Stage an audit entry in the caller's transaction.

        The entry is committed (or rolled back) together with the state
        change it describes.
        """
        log = AuditLog(
            actor_id=actor.user_id if actor else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=changes,
            ip_address=actor.ip_address if actor else None,
            user_agent=actor.user_agent if actor else None
        )
        db.add(log)
        return log

    @staticmethod
    def list_logs(
        db: Session,
        actor_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[AuditLog]:
        query = db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(AuditLog.entity_id == entity_id)
        if date_from:
            query = query.filter(AuditLog.created_at >= date_from)
        if date_to:
            query = query.filter(AuditLog.created_at <= date_to)

        return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
