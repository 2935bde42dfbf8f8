"""
Vendor Sales - Test Configuration

Pytest fixtures and configuration. Tests run against an in-memory SQLite
database that is rebuilt for every test.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["INVENTORY_API_URL"] = ""
os.environ["INVENTORY_API_KEY"] = ""

import itertools
from datetime import date, datetime
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from vendor_sales import models  # noqa: F401
from vendor_sales.core.actor import Actor
from vendor_sales.core.database import Base, SessionLocal, engine, get_db
from vendor_sales.core.security import create_access_token
from vendor_sales.main import app
from vendor_sales.models.commission import Commission, CommissionStatus
from vendor_sales.models.product import Product, CommissionType
from vendor_sales.models.sale import Sale, SaleStatus, RiskLevel, SaleChannel
from vendor_sales.models.user import User, UserRole
from vendor_sales.services.inventory_service import InventoryClient, get_inventory_client


def luhn_complete(prefix: str) -> str:
    """Append the Luhn check digit to a 14 digit prefix"""
    total = 0
    for i, char in enumerate(reversed(prefix)):
        digit = int(char)
        if i % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return prefix + str((10 - total % 10) % 10)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def imei_factory():
    """Yields distinct checksum-valid IMEIs"""
    counter = itertools.count(1)

    def make() -> str:
        return luhn_complete(f"3520990{next(counter):07d}")

    return make


# ===========================================
# USERS AND PRODUCTS
# ===========================================

@pytest.fixture
def admin_user(db_session: Session) -> User:
    user = User(email="admin@example.com", name="Admin", role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def vendor_user(db_session: Session) -> User:
    user = User(
        email="ana@example.com",
        name="Ana Vendor",
        role=UserRole.VENDOR,
        vendor_code="VND-001",
        bank_account="CLABE 012180001234567891"
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def second_vendor(db_session: Session) -> User:
    user = User(
        email="luis@example.com",
        name="Luis Vendor",
        role=UserRole.VENDOR,
        vendor_code="VND-002",
        bank_account="CLABE 012180009876543210"
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_actor(admin_user: User) -> Actor:
    return Actor(user_id=admin_user.id, role=UserRole.ADMIN, ip_address="10.0.0.1")


@pytest.fixture
def vendor_actor(vendor_user: User) -> Actor:
    return Actor(user_id=vendor_user.id, role=UserRole.VENDOR, ip_address="10.0.0.2", user_agent="pytest")


@pytest.fixture
def second_vendor_actor(second_vendor: User) -> Actor:
    return Actor(user_id=second_vendor.id, role=UserRole.VENDOR)


@pytest.fixture
def fixed_product(db_session: Session) -> Product:
    product = Product(
        sku="IPH15-128",
        name="iPhone 15 128GB",
        category="Smartphones",
        price=Decimal("17999.00"),
        commission_type=CommissionType.FIXED.value,
        commission_value=Decimal("300")
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


@pytest.fixture
def percentage_product(db_session: Session) -> Product:
    product = Product(
        sku="GS23-256",
        name="Galaxy S23 256GB",
        category="Smartphones",
        price=Decimal("3999.00"),
        commission_type=CommissionType.PERCENTAGE.value,
        commission_value=Decimal("8")
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


# ===========================================
# ROW BUILDERS
# ===========================================

@pytest.fixture
def make_sale(db_session: Session, imei_factory):
    """Insert a sale row directly, bypassing submission"""
    counter = itertools.count(1)

    def make(
        vendor: User,
        product: Product,
        status: SaleStatus = SaleStatus.PENDING,
        imei: str = None,
        price: Decimal = Decimal("1000.00"),
        created_at: datetime = None
    ) -> Sale:
        sale = Sale(
            sale_code=f"VT-20240101-{next(counter):03d}",
            vendor_id=vendor.id,
            product_id=product.id,
            imei=imei or imei_factory(),
            price=price,
            channel=SaleChannel.STORE.value,
            sale_date=date(2024, 1, 1),
            risk_level=RiskLevel.LOW,
            status=status,
            created_at=created_at or datetime.utcnow()
        )
        if status == SaleStatus.REJECTED:
            sale.rejection_reason = "Evidence missing"
        db_session.add(sale)
        db_session.commit()
        db_session.refresh(sale)
        return sale

    return make


@pytest.fixture
def make_commission(db_session: Session, make_sale):
    """Insert an approved sale plus its commission"""

    def make(
        vendor: User,
        product: Product,
        amount: Decimal,
        status: CommissionStatus = CommissionStatus.PENDING,
        price: Decimal = Decimal("1000.00")
    ) -> Commission:
        sale = make_sale(vendor, product, status=SaleStatus.APPROVED, price=price)
        commission = Commission(
            sale_id=sale.id,
            vendor_id=vendor.id,
            product_id=product.id,
            base_amount=price,
            commission_amount=amount,
            status=status
        )
        db_session.add(commission)
        db_session.commit()
        db_session.refresh(commission)
        return commission

    return make


# ===========================================
# API CLIENT
# ===========================================

@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client sharing the test session, with inventory lookups disabled"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_inventory_client] = lambda: InventoryClient()

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers(admin_user)


@pytest.fixture
def vendor_headers(vendor_user: User) -> dict:
    return auth_headers(vendor_user)
