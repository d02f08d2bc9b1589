"""
Master data tables (clients, suppliers, product master).

These are owned by the master-data screens; the invoicing core only reads
them to take snapshots, so each table keeps its own column names.
"""
from backoffice.database.database import Base
from sqlalchemy import Column, String, Boolean, Integer, Numeric, Text, Uuid
from uuid import uuid4
from backoffice.common.mixins import TimestampMixin


class Client(Base, TimestampMixin):
    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    gst_number = Column(String(15), nullable=True)
    pan_number = Column(String(10), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    pincode = Column(String(10), nullable=True)
    contact_person = Column(String(200), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    payment_terms = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class Supplier(Base, TimestampMixin):
    __tablename__ = "suppliers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    supplier_name = Column(String(200), nullable=False, index=True)
    gstin = Column(String(15), nullable=True)
    pan = Column(String(10), nullable=True)
    registered_address_street = Column(Text, nullable=True)
    registered_address_city = Column(String(100), nullable=True)
    registered_address_state = Column(String(100), nullable=True)
    registered_address_postal_code = Column(String(10), nullable=True)
    contact_person_name = Column(String(200), nullable=True)
    contact_phone = Column(String(20), nullable=True)
    contact_email = Column(String(100), nullable=True)
    payment_terms = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)


class ProductMaster(Base, TimestampMixin):
    __tablename__ = "product_master"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    product_code = Column(String(50), nullable=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    hsn_code = Column(String(20), nullable=True)
    unit = Column(String(30), nullable=True)
    rate = Column(Numeric(15, 2), nullable=True)
    gst_rate = Column(Numeric(5, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
