"""
Admin decisions on pending sales.

pending -> approved | rejected, both terminal. The transition is a single
conditional UPDATE on ``status = pending``; whoever loses a concurrent race
gets a ConflictError. Approval writes the commission in the same
transaction, so either both land or neither does.
"""

import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime

from vendor_sales.core.actor import Actor
from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import ConflictError, NotFoundError, ValidationError
from vendor_sales.models.product import Product
from vendor_sales.models.sale import Sale, SaleStatus
from vendor_sales.models.user import UserRole
from vendor_sales.services.audit_service import AuditService
from vendor_sales.services.commission_service import CommissionService

logger = logging.getLogger(__name__)


class ValidationService:
    @staticmethod
    def _load_pending_sale(db: Session, sale_id: str) -> Sale:
        sale = db.query(Sale).filter(Sale.id == sale_id).first()
        if not sale:
            raise NotFoundError("Sale not found")
        if sale.status != SaleStatus.PENDING:
            raise ConflictError(
                f"Sale {sale.sale_code} is not pending validation",
                details={"status": sale.status.value}
            )
        return sale

    @staticmethod
    def _claim_transition(db: Session, sale_id: str, values: dict) -> None:
        """Compare-and-set pending -> terminal; raises ConflictError when lost"""
        updated = db.query(Sale).filter(
            Sale.id == sale_id,
            Sale.status == SaleStatus.PENDING
        ).update(values, synchronize_session=False)

        if updated != 1:
            raise ConflictError("Sale is not pending validation")

    @staticmethod
    def approve_sale(db: Session, actor: Actor, sale_id: str) -> Sale:
        actor.require_role(UserRole.ADMIN)

        sale = ValidationService._load_pending_sale(db, sale_id)

        product = db.query(Product).filter(Product.id == sale.product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        if settings.BLOCK_APPROVED_DUPLICATE_IMEI:
            duplicate = db.query(Sale.id).filter(
                Sale.imei == sale.imei,
                Sale.status == SaleStatus.APPROVED,
                Sale.id != sale.id
            ).first()
            if duplicate:
                raise ConflictError("This IMEI has already been approved in the system")

        now = datetime.utcnow()
        try:
            ValidationService._claim_transition(db, sale_id, {
                Sale.status: SaleStatus.APPROVED,
                Sale.validated_by: actor.user_id,
                Sale.validated_at: now,
                Sale.updated_at: now,
            })

            commission = CommissionService.create_for_sale(db, sale, product, actor)
            db.flush()

            AuditService.log_action(
                db=db,
                action="approve_sale",
                entity_type="sales",
                entity_id=sale_id,
                actor=actor,
                changes={
                    "old_values": {"status": SaleStatus.PENDING.value},
                    "new_values": {
                        "status": SaleStatus.APPROVED.value,
                        "commission_id": commission.id,
                        "commission_amount": str(commission.commission_amount),
                    },
                }
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A commission already exists for this sale")
        except Exception:
            db.rollback()
            raise

        db.refresh(sale)
        logger.info("Sale %s approved by %s", sale.sale_code, actor.user_id)
        return sale

    @staticmethod
    def reject_sale(db: Session, actor: Actor, sale_id: str, reason: str) -> Sale:
        actor.require_role(UserRole.ADMIN)

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        sale = ValidationService._load_pending_sale(db, sale_id)

        now = datetime.utcnow()
        try:
            ValidationService._claim_transition(db, sale_id, {
                Sale.status: SaleStatus.REJECTED,
                Sale.rejection_reason: reason,
                Sale.validated_by: actor.user_id,
                Sale.validated_at: now,
                Sale.updated_at: now,
            })

            AuditService.log_action(
                db=db,
                action="reject_sale",
                entity_type="sales",
                entity_id=sale_id,
                actor=actor,
                changes={
                    "old_values": {"status": SaleStatus.PENDING.value},
                    "new_values": {"status": SaleStatus.REJECTED.value, "rejection_reason": reason},
                }
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(sale)
        logger.info("Sale %s rejected by %s", sale.sale_code, actor.user_id)
        return sale
