import logging
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from vendor_sales.core.actor import Actor
from vendor_sales.core.exceptions import ConflictError, NotFoundError, ValidationError
from vendor_sales.models.commission import Commission, CommissionStatus
from vendor_sales.models.payment_batch import PaymentBatch, PaymentBatchStatus, PaymentType
from vendor_sales.models.user import UserRole
from vendor_sales.services.audit_service import AuditService
from vendor_sales.services.commission_service import to_decimal
from vendor_sales.utils.identifiers import generate_batch_code

logger = logging.getLogger(__name__)

OPEN_BATCH_STATUSES = (PaymentBatchStatus.PENDING, PaymentBatchStatus.PROCESSING)


class PaymentService:
    @staticmethod
    def list_batches(db: Session, actor: Actor, skip: int = 0, limit: int = 20) -> List[PaymentBatch]:
        actor.require_role(UserRole.ADMIN)
        return db.query(PaymentBatch).order_by(
            PaymentBatch.created_at.desc()
        ).offset(skip).limit(limit).all()

    @staticmethod
    def get_batch(db: Session, actor: Actor, batch_id: str) -> PaymentBatch:
        actor.require_role(UserRole.ADMIN)
        batch = db.query(PaymentBatch).filter(PaymentBatch.id == batch_id).first()
        if not batch:
            raise NotFoundError("Payment batch not found")
        return batch

    @staticmethod
    def list_vendor_batches(db: Session, actor: Actor, vendor_id: str) -> List[PaymentBatch]:
        """Batches that include at least one of the vendor's commissions"""
        actor.require_vendor_access(vendor_id)
        return db.query(PaymentBatch).join(
            Commission, Commission.payment_batch_id == PaymentBatch.id
        ).filter(
            Commission.vendor_id == vendor_id
        ).distinct().order_by(PaymentBatch.created_at.desc()).all()

    @staticmethod
    def _next_batch_code(db: Session, today: date) -> str:
        start_of_day = datetime(today.year, today.month, today.day)
        daily_count = db.query(func.count(PaymentBatch.id)).filter(
            PaymentBatch.created_at >= start_of_day
        ).scalar() or 0
        return generate_batch_code(today, daily_count)

    @staticmethod
    def create_batch(
        db: Session,
        actor: Actor,
        commission_ids: List[str],
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
        payment_type: Optional[PaymentType] = None
    ) -> PaymentBatch:
        """Claim a set of unclaimed commissions into a new settlement batch.

        All or nothing: the batch row and every commission claim are written
        in one transaction. The claim is conditioned on each commission still
        being pending and outside any batch; if fewer rows are claimed than
        were selected, another batch won the race and everything is rolled
        back.
        """
        actor.require_role(UserRole.ADMIN)

        ids = list(dict.fromkeys(commission_ids or []))
        if not ids:
            raise ValidationError("No commissions selected")
        if period_start and period_end and period_start > period_end:
            raise ValidationError("period_start must not be after period_end")

        commissions = db.query(Commission).filter(Commission.id.in_(ids)).all()

        missing = sorted(set(ids) - {c.id for c in commissions})
        if missing:
            raise NotFoundError("Commission not found", details={"commission_ids": missing})

        claimed_elsewhere = sorted(
            c.id for c in commissions
            if c.status != CommissionStatus.PENDING or c.payment_batch_id is not None
        )
        if claimed_elsewhere:
            raise ConflictError(
                "Some commissions are already claimed by a payment batch",
                details={"commission_ids": claimed_elsewhere}
            )

        created_dates = [c.created_at.date() for c in commissions if c.created_at]
        now = datetime.utcnow()
        today = now.date()

        try:
            batch = PaymentBatch(
                batch_code=PaymentService._next_batch_code(db, today),
                period_start=period_start or (min(created_dates) if created_dates else today),
                period_end=period_end or (max(created_dates) if created_dates else today),
                payment_type=payment_type,
                status=PaymentBatchStatus.PENDING,
                total_vendors=0,
                total_amount=Decimal("0"),
                created_by=actor.user_id
            )
            db.add(batch)
            db.flush()

            claimed = db.query(Commission).filter(
                Commission.id.in_(ids),
                Commission.status == CommissionStatus.PENDING,
                Commission.payment_batch_id.is_(None)
            ).update({
                Commission.status: CommissionStatus.PROCESSING,
                Commission.payment_batch_id: batch.id,
                Commission.updated_at: now
            }, synchronize_session=False)

            if claimed != len(ids):
                raise ConflictError(
                    "Commissions were claimed by another batch, refresh and retry",
                    details={"selected": len(ids), "claimed": claimed}
                )

            # Totals come from the rows that now reference this batch
            rows = db.query(Commission.vendor_id, Commission.commission_amount).filter(
                Commission.payment_batch_id == batch.id
            ).all()
            batch.total_amount = sum((to_decimal(amount) for _, amount in rows), Decimal("0"))
            batch.total_vendors = len({vendor_id for vendor_id, _ in rows})

            AuditService.log_action(
                db=db,
                action="create_payment_batch",
                entity_type="payment_batches",
                entity_id=batch.id,
                actor=actor,
                changes={"new_values": {
                    "batch_code": batch.batch_code,
                    "commission_ids": ids,
                    "total_amount": str(batch.total_amount),
                    "total_vendors": batch.total_vendors,
                }}
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Batch code already taken, please retry")
        except Exception:
            db.rollback()
            raise

        db.refresh(batch)
        logger.info(
            "Payment batch %s created: %d commissions, %d vendors, total %s",
            batch.batch_code, len(ids), batch.total_vendors, batch.total_amount
        )
        return batch

    @staticmethod
    def complete_batch(db: Session, actor: Actor, batch_id: str) -> PaymentBatch:
        """Money went out: the batch is completed and its commissions are paid"""
        batch = PaymentService.get_batch(db, actor, batch_id)
        now = datetime.utcnow()

        try:
            updated = db.query(PaymentBatch).filter(
                PaymentBatch.id == batch_id,
                PaymentBatch.status.in_(OPEN_BATCH_STATUSES)
            ).update({
                PaymentBatch.status: PaymentBatchStatus.COMPLETED,
                PaymentBatch.completed_at: now,
                PaymentBatch.updated_at: now
            }, synchronize_session=False)

            if updated != 1:
                raise ConflictError(
                    f"Payment batch {batch.batch_code} is already {batch.status.value}",
                    details={"status": batch.status.value}
                )

            paid = db.query(Commission).filter(
                Commission.payment_batch_id == batch_id,
                Commission.status == CommissionStatus.PROCESSING
            ).update({
                Commission.status: CommissionStatus.PAID,
                Commission.paid_at: now,
                Commission.updated_at: now
            }, synchronize_session=False)

            AuditService.log_action(
                db=db,
                action="complete_payment_batch",
                entity_type="payment_batches",
                entity_id=batch_id,
                actor=actor,
                changes={"new_values": {"status": PaymentBatchStatus.COMPLETED.value, "commissions_paid": paid}}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(batch)
        logger.info("Payment batch %s completed, %d commissions paid", batch.batch_code, paid)
        return batch

    @staticmethod
    def fail_batch(db: Session, actor: Actor, batch_id: str, reason: str) -> PaymentBatch:
        """Record a failed payout; the commission assignment is kept as-is"""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Failure reason is required")

        batch = PaymentService.get_batch(db, actor, batch_id)
        now = datetime.utcnow()

        try:
            updated = db.query(PaymentBatch).filter(
                PaymentBatch.id == batch_id,
                PaymentBatch.status.in_(OPEN_BATCH_STATUSES)
            ).update({
                PaymentBatch.status: PaymentBatchStatus.FAILED,
                PaymentBatch.failure_reason: reason,
                PaymentBatch.updated_at: now
            }, synchronize_session=False)

            if updated != 1:
                raise ConflictError(
                    f"Payment batch {batch.batch_code} is already {batch.status.value}",
                    details={"status": batch.status.value}
                )

            AuditService.log_action(
                db=db,
                action="fail_payment_batch",
                entity_type="payment_batches",
                entity_id=batch_id,
                actor=actor,
                changes={"new_values": {"status": PaymentBatchStatus.FAILED.value, "failure_reason": reason}}
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(batch)
        logger.warning("Payment batch %s marked failed: %s", batch.batch_code, reason)
        return batch
