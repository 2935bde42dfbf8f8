import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Union
from decimal import Decimal
from datetime import date, datetime

from vendor_sales.core.actor import Actor
from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import NotFoundError
from vendor_sales.models.commission import Commission, CommissionStatus
from vendor_sales.models.product import Product, CommissionType, CommissionPolicy
from vendor_sales.models.sale import Sale, SaleStatus
from vendor_sales.models.user import User, UserRole
from vendor_sales.schemas.commission import (
    AdminDashboard,
    CommissionResponse,
    CommissionSimulationResult,
    RecalculationResult,
    VendorCommissionGroup,
    VendorCommissionSummary,
    VendorDashboard
)
from vendor_sales.services.audit_service import AuditService

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

_KNOWN_TYPES = {t.value for t in CommissionType}


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their shortest repr instead of binary noise
    return Decimal(str(value))


def is_known_policy(policy: CommissionPolicy) -> bool:
    return str(policy.commission_type) in _KNOWN_TYPES


def calculate_commission(policy: CommissionPolicy, sale_price: Number) -> Decimal:
    """Commission owed for one sale under a product policy.

    fixed       -> the policy value, whatever the price
    percentage  -> price * value / 100, unrounded
    anything else yields 0; the caller reports the corrupt policy.
    """
    commission_type = str(policy.commission_type)
    value = to_decimal(policy.value)

    if commission_type == CommissionType.FIXED.value:
        return value
    elif commission_type == CommissionType.PERCENTAGE.value:
        return to_decimal(sale_price) * value / Decimal(100)

    return Decimal("0")


class CommissionService:
    @staticmethod
    def derive_commission(
        db: Session,
        product: Product,
        sale_price: Number,
        actor: Optional[Actor] = None,
        sale_id: Optional[str] = None
    ) -> Decimal:
        """Calculate and record a data-integrity anomaly for unknown policy types"""
        policy = product.policy
        if not is_known_policy(policy):
            logger.error(
                "Product %s has unknown commission type %r, commission set to 0",
                product.id, policy.commission_type
            )
            AuditService.log_action(
                db=db,
                action="commission_policy_anomaly",
                entity_type="products",
                entity_id=product.id,
                actor=actor,
                changes={"commission_type": str(policy.commission_type), "sale_id": sale_id}
            )
        return calculate_commission(policy, sale_price)

    @staticmethod
    def create_for_sale(db: Session, sale: Sale, product: Product, actor: Actor) -> Commission:
        """Stage the commission of a sale being approved (caller commits)"""
        amount = CommissionService.derive_commission(db, product, sale.price, actor, sale_id=sale.id)
        commission = Commission(
            sale_id=sale.id,
            vendor_id=sale.vendor_id,
            product_id=product.id,
            base_amount=to_decimal(sale.price),
            commission_amount=amount,
            status=CommissionStatus.PENDING
        )
        db.add(commission)
        return commission

    @staticmethod
    def get_commission(db: Session, actor: Actor, commission_id: str) -> Commission:
        commission = db.query(Commission).filter(Commission.id == commission_id).first()
        if not commission:
            raise NotFoundError("Commission not found")
        actor.require_vendor_access(commission.vendor_id)
        return commission

    @staticmethod
    def list_vendor_commissions(db: Session, actor: Actor, vendor_id: str) -> List[Commission]:
        actor.require_vendor_access(vendor_id)
        return db.query(Commission).filter(
            Commission.vendor_id == vendor_id
        ).order_by(Commission.created_at.desc(), Commission.id.desc()).all()

    @staticmethod
    def list_commissions(
        db: Session,
        actor: Actor,
        vendor_id: Optional[str] = None,
        status: Optional[CommissionStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Commission]:
        query = db.query(Commission)

        # Vendors only ever see their own ledger
        if actor.role == UserRole.VENDOR:
            vendor_id = actor.user_id
        if vendor_id:
            query = query.filter(Commission.vendor_id == vendor_id)
        if status:
            query = query.filter(Commission.status == status)

        return query.order_by(Commission.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_pending_by_vendor(db: Session, actor: Actor) -> List[VendorCommissionGroup]:
        """Unclaimed commissions folded into one group per vendor"""
        actor.require_role(UserRole.ADMIN)

        rows = db.query(Commission, User).join(User, Commission.vendor_id == User.id).filter(
            Commission.status == CommissionStatus.PENDING,
            Commission.payment_batch_id.is_(None)
        ).all()

        grouped: Dict[str, Dict[str, Any]] = {}
        for commission, vendor in rows:
            group = grouped.setdefault(commission.vendor_id, {
                "vendor_id": commission.vendor_id,
                "vendor_name": vendor.name,
                "vendor_code": vendor.vendor_code,
                "bank_account": vendor.bank_account,
                "commissions": [],
                "total": Decimal("0"),
            })
            group["commissions"].append(commission)
            group["total"] += to_decimal(commission.commission_amount)

        result = []
        for vendor_id in sorted(grouped, key=lambda v: (grouped[v]["vendor_code"] or "", v)):
            group = grouped[vendor_id]
            group["commissions"] = [
                CommissionResponse.model_validate(c)
                for c in sorted(group["commissions"], key=lambda c: (c.created_at, c.id))
            ]
            result.append(VendorCommissionGroup(**group))
        return result

    @staticmethod
    def get_vendor_summary(db: Session, actor: Actor, vendor_id: str) -> VendorCommissionSummary:
        actor.require_vendor_access(vendor_id)

        commissions = db.query(Commission.status, Commission.commission_amount).filter(
            Commission.vendor_id == vendor_id
        ).all()

        totals = {status: Decimal("0") for status in CommissionStatus}
        for status, amount in commissions:
            totals[status] += to_decimal(amount)

        return VendorCommissionSummary(
            vendor_id=vendor_id,
            pending=totals[CommissionStatus.PENDING],
            processing=totals[CommissionStatus.PROCESSING],
            paid=totals[CommissionStatus.PAID],
            total_earned=totals[CommissionStatus.PENDING] + totals[CommissionStatus.PAID],
            count=len(commissions)
        )

    @staticmethod
    def get_dashboard_data(
        db: Session,
        actor: Actor,
        vendor_id: Optional[str] = None,
        today: Optional[date] = None
    ) -> VendorDashboard:
        """Dashboard data for a vendor (defaults to the caller)"""
        vendor_id = vendor_id or actor.user_id
        summary = CommissionService.get_vendor_summary(db, actor, vendor_id)
        month_start = (today or datetime.utcnow().date()).replace(day=1)

        total_sales = db.query(func.count(Sale.id)).filter(Sale.vendor_id == vendor_id).scalar() or 0

        pending_sales = db.query(func.count(Sale.id)).filter(
            Sale.vendor_id == vendor_id,
            Sale.status == SaleStatus.PENDING
        ).scalar() or 0

        month_sales = db.query(func.count(Sale.id)).filter(
            Sale.vendor_id == vendor_id,
            Sale.status == SaleStatus.APPROVED,
            Sale.sale_date >= month_start
        ).scalar() or 0

        recent = db.query(Commission).filter(
            Commission.vendor_id == vendor_id
        ).order_by(Commission.created_at.desc()).limit(10).all()

        return VendorDashboard(
            vendor_id=vendor_id,
            total_sales=total_sales,
            pending_sales=pending_sales,
            month_sales=month_sales,
            total_earned=summary.total_earned,
            pending_commissions=summary.pending,
            paid_commissions=summary.paid,
            recent_commissions=[CommissionResponse.model_validate(c) for c in recent]
        )

    @staticmethod
    def get_admin_dashboard(db: Session, actor: Actor, today: Optional[date] = None) -> AdminDashboard:
        actor.require_role(UserRole.ADMIN)
        month_start = (today or datetime.utcnow().date()).replace(day=1)

        active_vendors = db.query(func.count(User.id)).filter(
            User.role == UserRole.VENDOR,
            User.is_active == True  # noqa: E712
        ).scalar() or 0

        pending_sales = db.query(func.count(Sale.id)).filter(
            Sale.status == SaleStatus.PENDING
        ).scalar() or 0

        # Summed in Python so Numeric values stay Decimal on every backend
        month_prices = db.query(Sale.price).filter(
            Sale.status == SaleStatus.APPROVED,
            Sale.sale_date >= month_start
        ).all()

        pending_amounts = db.query(Commission.commission_amount).filter(
            Commission.status == CommissionStatus.PENDING
        ).all()

        return AdminDashboard(
            active_vendors=active_vendors,
            pending_sales=pending_sales,
            month_revenue=sum((to_decimal(price) for price, in month_prices), Decimal("0")),
            pending_commissions=sum((to_decimal(amount) for amount, in pending_amounts), Decimal("0"))
        )

    @staticmethod
    def simulate_commission(db: Session, product_id: str, base_amount: Number) -> CommissionSimulationResult:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        return CommissionSimulationResult(
            product_id=product.id,
            product_name=product.name,
            base_amount=to_decimal(base_amount),
            commission_amount=calculate_commission(product.policy, base_amount),
            commission_type=str(product.commission_type),
            commission_value=to_decimal(product.commission_value)
        )

    @staticmethod
    def recalculate_commissions(
        db: Session,
        actor: Optional[Actor] = None,
        tolerance: Optional[Decimal] = None
    ) -> RecalculationResult:
        """Re-derive unclaimed commissions from the current product policies.

        Only commissions still pending and outside any batch are touched, so a
        batch total can never drift. An amount is rewritten only when it moved
        by more than ``tolerance``; running this twice in a row updates nothing
        the second time. ``actor`` is None when run from a background task.
        """
        if actor is not None:
            actor.require_role(UserRole.ADMIN)
        tolerance = to_decimal(settings.COMMISSION_RECALC_TOLERANCE if tolerance is None else tolerance)

        rows = db.query(Commission, Sale, Product).join(
            Sale, Commission.sale_id == Sale.id
        ).join(
            Product, Commission.product_id == Product.id
        ).filter(
            Commission.status == CommissionStatus.PENDING,
            Commission.payment_batch_id.is_(None)
        ).all()

        result = RecalculationResult(examined=len(rows))
        try:
            for commission, sale, product in rows:
                current = to_decimal(commission.commission_amount)
                new_amount = CommissionService.derive_commission(db, product, sale.price, actor, sale_id=sale.id)

                if abs(new_amount - current) <= tolerance:
                    continue

                updated = db.query(Commission).filter(
                    Commission.id == commission.id,
                    Commission.status == CommissionStatus.PENDING,
                    Commission.payment_batch_id.is_(None)
                ).update({
                    Commission.commission_amount: new_amount,
                    Commission.updated_at: datetime.utcnow()
                }, synchronize_session=False)

                if updated != 1:
                    # Claimed by a batch in the meantime
                    logger.info("Commission %s claimed during recalculation, skipped", commission.id)
                    continue

                AuditService.log_action(
                    db=db,
                    action="recalculate_commission",
                    entity_type="commissions",
                    entity_id=commission.id,
                    actor=actor,
                    changes={
                        "old_values": {"commission_amount": str(current)},
                        "new_values": {"commission_amount": str(new_amount)},
                    }
                )
                result.recalculated += 1

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Recalculated %d of %d pending commissions", result.recalculated, result.examined)
        return result
