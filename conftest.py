"""
Shared pytest fixtures: in-memory database, API client, tokens and master data.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.main import app
from backoffice.database.database import Base, get_db
from backoffice.modules.auth.schemas import UserRole
from backoffice.modules.auth.utils import create_access_token
from backoffice.modules.masters.models import Client, Supplier, ProductMaster
from backoffice.modules.orders.models import SalesOrder, SalesOrderItem


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ===== DATABASE =====

@pytest.fixture
def db_session():
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """TestClient sharing the test session"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ===== AUTH =====

@pytest.fixture
def user_id():
    return uuid4()


def _headers(user_id, role: UserRole) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def auth_headers(user_id):
    """Accountant token: may do everything including status overrides"""
    return _headers(user_id, UserRole.ACCOUNTANT)


@pytest.fixture
def employee_headers(user_id):
    return _headers(user_id, UserRole.EMPLOYEE)


# ===== MASTER DATA =====

@pytest.fixture
def make_client(db_session):
    def _make(**overrides):
        data = {
            "name": "Deccan Paints Pvt Ltd",
            "gst_number": "36AABCD1234E1Z5",
            "pan_number": "AABCD1234E",
            "address": "Plot 12, IDA Jeedimetla",
            "city": "Hyderabad",
            "state": "Telangana",
            "pincode": "500055",
            "contact_person": "R. Rao",
            "mobile_number": "9876543210",
            "email": "accounts@deccanpaints.in",
            "payment_terms": 30,
        }
        data.update(overrides)
        record = Client(**data)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record
    return _make


@pytest.fixture
def make_supplier(db_session):
    def _make(**overrides):
        data = {
            "supplier_name": "Gujarat Bitumen Co",
            "gstin": "24AAACG5678H1Z2",
            "pan": "AAACG5678H",
            "registered_address_street": "GIDC Estate",
            "registered_address_city": "Vadodara",
            "registered_address_state": "Gujarat",
            "registered_address_postal_code": "390010",
            "contact_person_name": "M. Patel",
            "contact_phone": "9123456780",
            "contact_email": "sales@gujbitumen.in",
            "payment_terms": 45,
        }
        data.update(overrides)
        record = Supplier(**data)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(**overrides):
        data = {
            "product_code": f"P-{uuid4().hex[:6].upper()}",
            "name": "Bitumen VG-30",
            "description": "Viscosity grade bitumen",
            "hsn_code": "27132000",
            "unit": "DRUMS",
            "rate": Decimal("100.00"),
            "gst_rate": Decimal("18.00"),
        }
        data.update(overrides)
        record = ProductMaster(**data)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record
    return _make


@pytest.fixture
def make_sales_order(db_session):
    def _make(order_number, lines, client=None, order_date=None):
        """lines: [(product_master, quantity, unit_price), ...]"""
        order = SalesOrder(
            order_number=order_number,
            client_id=client.id if client else None,
            order_date=order_date or date(2025, 5, 1),
            total_amount=sum((Decimal(qty) * Decimal(price) for _, qty, price in lines), Decimal("0")),
        )
        for product, qty, price in lines:
            order.items.append(SalesOrderItem(
                product_id=product.id,
                quantity=Decimal(qty),
                unit=product.unit,
                unit_price=Decimal(price),
                total_price=Decimal(qty) * Decimal(price),
            ))
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order
    return _make
