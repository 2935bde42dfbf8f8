from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List

from vendor_sales.core.actor import Actor
from vendor_sales.core.exceptions import ConflictError, NotFoundError, ValidationError
from vendor_sales.models.product import Product, CommissionType
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.product import ProductCreate, ProductUpdate
from vendor_sales.services.audit_service import AuditService


class ProductService:
    @staticmethod
    def list_products(db: Session, active_only: bool = True, skip: int = 0, limit: int = 100) -> List[Product]:
        query = db.query(Product)
        if active_only:
            query = query.filter(Product.is_active == True)  # noqa: E712
        return query.order_by(Product.name.asc()).offset(skip).limit(limit).all()

    @staticmethod
    def create_product(db: Session, actor: Actor, data: ProductCreate) -> Product:
        actor.require_role(UserRole.ADMIN)

        values = data.model_dump()
        values["commission_type"] = data.commission_type.value
        product = Product(**values)

        try:
            db.add(product)
            db.flush()
            AuditService.log_action(
                db=db,
                action="create_product",
                entity_type="products",
                entity_id=product.id,
                actor=actor,
                changes={"new_values": {
                    "sku": product.sku,
                    "commission_type": product.commission_type,
                    "commission_value": str(product.commission_value),
                }}
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(f"Product with SKU {data.sku} already exists")

        db.refresh(product)
        return product

    @staticmethod
    def update_product(db: Session, actor: Actor, product_id: str, data: ProductUpdate) -> Product:
        """Policy changes never touch existing commissions; see recalculate_commissions"""
        actor.require_role(UserRole.ADMIN)

        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        changes = data.model_dump(exclude_unset=True)
        if "commission_type" in changes and changes["commission_type"] is not None:
            changes["commission_type"] = changes["commission_type"].value

        new_type = changes.get("commission_type") or product.commission_type
        new_value = changes.get("commission_value", product.commission_value)
        if new_type == CommissionType.PERCENTAGE.value and new_value is not None and new_value > 100:
            raise ValidationError("Percentage commission must be between 0 and 100")

        old_values = {field: str(getattr(product, field)) for field in changes}
        for field, value in changes.items():
            setattr(product, field, value)

        try:
            AuditService.log_action(
                db=db,
                action="update_product",
                entity_type="products",
                entity_id=product.id,
                actor=actor,
                changes={
                    "old_values": old_values,
                    "new_values": {field: str(value) for field, value in changes.items()},
                }
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(product)
        return product
