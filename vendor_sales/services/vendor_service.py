from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List

from vendor_sales.core.actor import Actor
from vendor_sales.core.exceptions import ConflictError
from vendor_sales.models.user import User, UserRole
from vendor_sales.schemas.user import VendorCreate
from vendor_sales.services.audit_service import AuditService
from vendor_sales.utils.identifiers import generate_vendor_code, parse_vendor_number


class VendorService:
    @staticmethod
    def _next_vendor_code(db: Session) -> str:
        codes = db.query(User.vendor_code).filter(User.vendor_code.isnot(None)).all()
        last_number = max((parse_vendor_number(code) for (code,) in codes), default=0)
        return generate_vendor_code(last_number)

    @staticmethod
    def create_vendor(db: Session, actor: Actor, data: VendorCreate) -> User:
        """Register a vendor directory entry with the next VND-NNN code"""
        actor.require_role(UserRole.ADMIN)

        if db.query(User.id).filter(User.email == data.email).first():
            raise ConflictError("A user with this email already exists")

        vendor = User(
            email=data.email,
            name=data.name,
            phone=data.phone,
            bank_account=data.bank_account,
            role=UserRole.VENDOR,
            vendor_code=VendorService._next_vendor_code(db)
        )

        try:
            db.add(vendor)
            db.flush()
            AuditService.log_action(
                db=db,
                action="create_vendor",
                entity_type="users",
                entity_id=vendor.id,
                actor=actor,
                changes={"new_values": {"vendor_code": vendor.vendor_code, "email": vendor.email}}
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Vendor code or email already taken, please retry")

        db.refresh(vendor)
        return vendor

    @staticmethod
    def list_vendors(db: Session, actor: Actor, skip: int = 0, limit: int = 100) -> List[User]:
        actor.require_role(UserRole.ADMIN)
        return db.query(User).filter(
            User.role == UserRole.VENDOR
        ).order_by(User.vendor_code.asc()).offset(skip).limit(limit).all()
