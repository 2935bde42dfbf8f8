from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from vendor_sales.core.actor import Actor
from vendor_sales.core.database import get_db
from vendor_sales.core.security import get_current_actor, require_role
from vendor_sales.models.user import UserRole
from vendor_sales.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from vendor_sales.services.product_service import ProductService

router = APIRouter()


@router.get("/", response_model=List[ProductResponse])
async def list_products(
    skip: int = 0,
    limit: int = 100,
    current_actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """List all active products"""
    return ProductService.list_products(db, skip=skip, limit=limit)


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Create new product (admin only)"""
    return ProductService.create_product(db, current_actor, product_data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    current_actor: Actor = Depends(require_role(UserRole.ADMIN)),
    db: Session = Depends(get_db)
):
    """Update product and commission policy (admin only)"""
    return ProductService.update_product(db, current_actor, product_id, product_data)
