import logging
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from datetime import date, datetime

from vendor_sales.core.actor import Actor
from vendor_sales.core.config import settings
from vendor_sales.core.exceptions import ConflictError, InventoryUnavailableError, NotFoundError, ValidationError
from vendor_sales.models.product import Product
from vendor_sales.models.sale import Sale, SaleStatus
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.inventory import InventoryCheckResponse
from vendor_sales.schemas.sale import SaleCreate
from vendor_sales.services.audit_service import AuditService
from vendor_sales.services.inventory_service import InventoryClient, InventoryLookupError
from vendor_sales.services.risk_service import RiskAssessment, RiskInput, RiskScorer, SelectedProduct
from vendor_sales.utils.identifiers import generate_sale_code
from vendor_sales.utils.imei import FORMAT_ERROR, clean_imei, mask_imei, validate_imei

logger = logging.getLogger(__name__)


class SaleService:
    @staticmethod
    def _check_imei(imei: str) -> str:
        validation = validate_imei(imei)
        if not validation.valid:
            if validation.error_code == FORMAT_ERROR or settings.ENFORCE_IMEI_CHECKSUM:
                raise ValidationError(
                    validation.error,
                    details={"imei": mask_imei(imei), "reason": validation.error_code}
                )
            logger.warning("Accepting IMEI %s with failed checksum", mask_imei(imei))
        return clean_imei(imei)

    @staticmethod
    def _lookup_inventory(inventory_client: Optional[InventoryClient], imei: str):
        """Returns (record or None, lookup_failed)"""
        if inventory_client is None:
            return None, False
        try:
            return inventory_client.lookup(imei), False
        except InventoryLookupError:
            return None, True

    @staticmethod
    def _next_sale_code(db: Session, sale_date: date) -> str:
        daily_count = db.query(func.count(Sale.id)).filter(Sale.sale_date == sale_date).scalar() or 0
        return generate_sale_code(sale_date, daily_count)

    @staticmethod
    def submit_sale(
        db: Session,
        actor: Actor,
        data: SaleCreate,
        inventory_client: Optional[InventoryClient] = None
    ) -> Tuple[Sale, RiskAssessment]:
        """Vendor submission: validate, score and persist as pending"""
        actor.require_role(UserRole.VENDOR)

        imei = SaleService._check_imei(data.imei)

        product = db.query(Product).filter(Product.id == data.product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        if settings.BLOCK_APPROVED_DUPLICATE_IMEI:
            approved = db.query(Sale.id).filter(
                Sale.imei == imei,
                Sale.status == SaleStatus.APPROVED
            ).first()
            if approved:
                logger.info("Blocked duplicate approved IMEI %s", mask_imei(imei))
                raise ConflictError("This IMEI has already been approved in the system")

        inventory_result, lookup_failed = SaleService._lookup_inventory(inventory_client, imei)

        assessment = RiskScorer(db).assess(RiskInput(
            imei=imei,
            vendor_id=actor.user_id,
            ip=actor.ip_address,
            inventory_result=inventory_result,
            selected_product=SelectedProduct(name=product.name, category=product.category),
            inventory_lookup_failed=lookup_failed
        ))

        sale_date = data.sale_date or date.today()
        sale = Sale(
            sale_code=SaleService._next_sale_code(db, sale_date),
            vendor_id=actor.user_id,
            product_id=product.id,
            imei=imei,
            price=data.price,
            channel=data.channel.value,
            sale_date=sale_date,
            risk_level=assessment.level,
            status=SaleStatus.PENDING,
            evidence_url=data.evidence_url,
            notes=data.notes,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent
        )

        try:
            db.add(sale)
            db.flush()
            AuditService.log_action(
                db=db,
                action="create_sale",
                entity_type="sales",
                entity_id=sale.id,
                actor=actor,
                changes={"new_values": {
                    "sale_code": sale.sale_code,
                    "product_id": product.id,
                    "imei": mask_imei(imei),
                    "price": str(sale.price),
                    "risk_level": assessment.level.value,
                    "risk_score": assessment.score,
                    "risk_reasons": assessment.reasons,
                }}
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Sale code already taken, please retry the submission")

        db.refresh(sale)
        logger.info(
            "Sale created: %s, risk: %s, IMEI: %s",
            sale.sale_code, assessment.level.value, mask_imei(imei)
        )
        return sale, assessment

    @staticmethod
    def rescore_sale(
        db: Session,
        actor: Actor,
        sale_id: str,
        inventory_client: Optional[InventoryClient] = None
    ) -> Tuple[Sale, RiskAssessment]:
        """Recompute the risk of a pending sale; terminal sales are left untouched"""
        actor.require_role(UserRole.ADMIN)

        sale = db.query(Sale).filter(Sale.id == sale_id).first()
        if not sale:
            raise NotFoundError("Sale not found")
        if sale.status != SaleStatus.PENDING:
            raise ConflictError(
                f"Sale {sale.sale_code} is already {sale.status.value}",
                details={"status": sale.status.value}
            )

        product = db.query(Product).filter(Product.id == sale.product_id).first()
        inventory_result, lookup_failed = SaleService._lookup_inventory(inventory_client, sale.imei)

        assessment = RiskScorer(db).assess(RiskInput(
            imei=sale.imei,
            vendor_id=sale.vendor_id,
            ip=sale.ip_address,
            inventory_result=inventory_result,
            selected_product=SelectedProduct(name=product.name, category=product.category) if product else None,
            inventory_lookup_failed=lookup_failed,
            exclude_sale_id=sale.id
        ))

        previous_level = sale.risk_level.value if sale.risk_level else None
        try:
            updated = db.query(Sale).filter(
                Sale.id == sale_id,
                Sale.status == SaleStatus.PENDING
            ).update({
                Sale.risk_level: assessment.level,
                Sale.updated_at: datetime.utcnow()
            }, synchronize_session=False)

            if updated != 1:
                raise ConflictError("Sale was validated while it was being re-scored")

            AuditService.log_action(
                db=db,
                action="rescore_sale",
                entity_type="sales",
                entity_id=sale_id,
                actor=actor,
                changes={
                    "old_values": {"risk_level": previous_level},
                    "new_values": {"risk_level": assessment.level.value, "risk_score": assessment.score},
                }
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(sale)
        return sale, assessment

    @staticmethod
    def get_sale(db: Session, actor: Actor, sale_id: str) -> Sale:
        sale = db.query(Sale).filter(Sale.id == sale_id).first()
        if not sale:
            raise NotFoundError("Sale not found")
        actor.require_vendor_access(sale.vendor_id)
        return sale

    @staticmethod
    def list_sales(
        db: Session,
        actor: Actor,
        status: Optional[SaleStatus] = None,
        vendor_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Sale]:
        query = db.query(Sale)

        if actor.role == UserRole.VENDOR:
            vendor_id = actor.user_id
        if vendor_id:
            query = query.filter(Sale.vendor_id == vendor_id)
        if status:
            query = query.filter(Sale.status == status)
        if date_from:
            query = query.filter(Sale.sale_date >= date_from)
        if date_to:
            query = query.filter(Sale.sale_date <= date_to)

        return query.order_by(Sale.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def list_pending_sales(db: Session, actor: Actor) -> List[Sale]:
        """Validation queue, oldest first"""
        actor.require_role(UserRole.ADMIN)
        return db.query(Sale).filter(
            Sale.status == SaleStatus.PENDING
        ).order_by(Sale.created_at.asc()).all()

    @staticmethod
    def check_inventory(
        actor: Actor,
        imei: str,
        inventory_client: Optional[InventoryClient] = None
    ) -> InventoryCheckResponse:
        """Pre-submission lookup; a failed checksum is reported, not blocking"""
        validation = validate_imei(imei)
        if validation.error_code == FORMAT_ERROR:
            raise ValidationError(
                validation.error,
                details={"imei": mask_imei(imei), "reason": validation.error_code}
            )
        if not validation.valid:
            logger.warning("IMEI %s failed checksum, checking inventory anyway", mask_imei(imei))

        cleaned = clean_imei(imei)
        record = None
        if inventory_client is not None:
            try:
                record = inventory_client.lookup(cleaned)
            except InventoryLookupError as e:
                raise InventoryUnavailableError(details={"imei": mask_imei(cleaned)}) from e

        if record:
            logger.info("IMEI %s found in inventory: %s %s", mask_imei(cleaned), record.brand, record.model)
        else:
            logger.info("IMEI %s not found in inventory (requested by %s)", mask_imei(cleaned), actor.user_id)

        return InventoryCheckResponse(
            imei=mask_imei(cleaned),
            checksum_valid=validation.valid,
            found=record is not None,
            record=record
        )
