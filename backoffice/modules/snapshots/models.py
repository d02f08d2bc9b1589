from backoffice.database.database import Base
from sqlalchemy import Column, String, Boolean, Integer, Numeric, Text, Enum, ForeignKey, UniqueConstraint, Uuid
from uuid import uuid4
from backoffice.common.mixins import TimestampMixin
import enum


class PartyType(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"


class MasterTable(str, enum.Enum):
    """Master tables a snapshot can be copied from"""
    CLIENTS = "clients"
    SUPPLIERS = "suppliers"
    PRODUCT_MASTER = "product_master"


class InvoiceParty(Base, TimestampMixin):
    """
    Copy of a customer/supplier master record as it was when it was used on an
    invoice. Invoices point here, never at the master tables.
    """
    __tablename__ = "invoice_parties"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    party_name = Column(String(200), nullable=False, index=True)
    party_type = Column(Enum(PartyType), nullable=False, index=True)

    billing_address = Column(Text, nullable=False, default="N/A")
    city = Column(String(100), nullable=False, default="N/A")
    state = Column(String(100), nullable=False, default="N/A")
    state_code = Column(String(2), nullable=False, default="00")
    pincode = Column(String(10), nullable=False, default="000000")

    gstin = Column(String(15), nullable=True)
    pan = Column(String(10), nullable=True)
    contact_person = Column(String(200), nullable=True)
    contact_number = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    credit_days = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, default=True, nullable=False)


class InvoiceProduct(Base, TimestampMixin):
    """Copy of a product master record used on invoices"""
    __tablename__ = "invoice_products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    product_name = Column(String(200), nullable=False, index=True)
    product_code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    hsn_code = Column(String(20), nullable=True)
    unit = Column(String(20), nullable=False, default="PIECE")
    rate = Column(Numeric(15, 2), nullable=False, default=0)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)


class MasterSnapshotLink(Base, TimestampMixin):
    """
    (master table, master id) -> snapshot id.

    Keeps the snapshot identity stable when a master record is renamed.
    """
    __tablename__ = "master_snapshot_links"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    master_table = Column(Enum(MasterTable), nullable=False)
    master_id = Column(Uuid(as_uuid=True), nullable=False)
    party_id = Column(Uuid(as_uuid=True), ForeignKey("invoice_parties.id", ondelete="CASCADE"), nullable=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("invoice_products.id", ondelete="CASCADE"), nullable=True)

    __table_args__ = (
        UniqueConstraint("master_table", "master_id", name="uq_snapshot_link_master"),
    )
