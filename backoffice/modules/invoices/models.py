from backoffice.database.database import Base
from sqlalchemy import Column, Integer, String, Date, Numeric, Text, Enum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, declared_attr
from dataclasses import dataclass
from datetime import date
from uuid import uuid4
from backoffice.common.mixins import TimestampMixin
from backoffice.modules.snapshots.models import PartyType
import enum


class DocumentType(str, enum.Enum):
    SALES = "SALES"
    PURCHASE = "PURCHASE"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class PaymentMode(str, enum.Enum):
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    NEFT = "NEFT"
    RTGS = "RTGS"
    CARD = "CARD"
    OTHER = "OTHER"


class InvoiceHeaderMixin(TimestampMixin):
    """Columns shared by sales and purchase invoice headers"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_number = Column(String(50), nullable=False, index=True)
    financial_year = Column(String(9), nullable=False, index=True)  # "25-26"
    invoice_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)
    invoice_status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT)
    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING, index=True)

    # Copied from the party snapshot at creation time
    party_name = Column(String(200), nullable=False)
    party_gstin = Column(String(15), nullable=True)
    party_state_code = Column(String(2), nullable=False, default="00")
    place_of_supply = Column(String(100), nullable=True)

    # Totals
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    cgst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    sgst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    igst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    other_charges = Column(Numeric(15, 2), nullable=False, default=0)
    round_off = Column(Numeric(15, 2), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), nullable=True)

    @declared_attr
    def party_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("invoice_parties.id"), nullable=False, index=True)

    @declared_attr
    def party(cls):
        return relationship("InvoiceParty")


class InvoiceItemMixin(TimestampMixin):
    """Columns shared by sales and purchase line items"""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    line_number = Column(Integer, nullable=False, default=1)
    description = Column(Text, nullable=True)
    hsn_code = Column(String(20), nullable=True)
    quantity = Column(Numeric(15, 3), nullable=False)
    unit = Column(String(20), nullable=False, default="PIECE")
    rate = Column(Numeric(15, 2), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)  # quantity * rate
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    # Master product id, kept for sales-order reconciliation
    master_product_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    @declared_attr
    def product_id(cls):
        return Column(Uuid(as_uuid=True), ForeignKey("invoice_products.id"), nullable=True)

    @declared_attr
    def product(cls):
        return relationship("InvoiceProduct")


class InvoicePaymentMixin(TimestampMixin):
    """Payments are append-only; they are never edited or deleted on their own."""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_date = Column(Date, nullable=False, default=date.today)
    payment_mode = Column(Enum(PaymentMode), nullable=False, default=PaymentMode.BANK_TRANSFER)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(Uuid(as_uuid=True), nullable=True)


class SalesInvoice(Base, InvoiceHeaderMixin):
    __tablename__ = "sales_invoices"

    sales_order_id = Column(Uuid(as_uuid=True), ForeignKey("sales_orders.id"), nullable=True, index=True)
    sales_order_number = Column(String(50), nullable=True, index=True)

    sales_order = relationship("SalesOrder")
    items = relationship(
        "SalesInvoiceItem", back_populates="invoice",
        cascade="all, delete-orphan", order_by="SalesInvoiceItem.line_number"
    )
    payments = relationship(
        "SalesInvoicePayment", back_populates="invoice",
        cascade="all, delete-orphan", order_by="SalesInvoicePayment.payment_date"
    )

    __table_args__ = (
        UniqueConstraint("financial_year", "invoice_number", name="uq_sales_invoice_fy_number"),
    )


class SalesInvoiceItem(Base, InvoiceItemMixin):
    __tablename__ = "sales_invoice_items"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("sales_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = relationship("SalesInvoice", back_populates="items")


class SalesInvoicePayment(Base, InvoicePaymentMixin):
    __tablename__ = "sales_invoice_payments"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("sales_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = relationship("SalesInvoice", back_populates="payments")


class PurchaseInvoice(Base, InvoiceHeaderMixin):
    __tablename__ = "purchase_invoices"

    # Number printed on the supplier's own bill
    supplier_invoice_number = Column(String(50), nullable=True)
    supplier_invoice_date = Column(Date, nullable=True)

    items = relationship(
        "PurchaseInvoiceItem", back_populates="invoice",
        cascade="all, delete-orphan", order_by="PurchaseInvoiceItem.line_number"
    )
    payments = relationship(
        "PurchaseInvoicePayment", back_populates="invoice",
        cascade="all, delete-orphan", order_by="PurchaseInvoicePayment.payment_date"
    )

    __table_args__ = (
        UniqueConstraint("financial_year", "invoice_number", name="uq_purchase_invoice_fy_number"),
    )


class PurchaseInvoiceItem(Base, InvoiceItemMixin):
    __tablename__ = "purchase_invoice_items"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = relationship("PurchaseInvoice", back_populates="items")


class PurchaseInvoicePayment(Base, InvoicePaymentMixin):
    __tablename__ = "purchase_invoice_payments"

    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = relationship("PurchaseInvoice", back_populates="payments")


@dataclass(frozen=True)
class DocumentModels:
    """Tables backing one document type"""
    invoice: type
    item: type
    payment: type
    party_type: PartyType


DOCUMENT_MODELS = {
    DocumentType.SALES: DocumentModels(SalesInvoice, SalesInvoiceItem, SalesInvoicePayment, PartyType.CUSTOMER),
    DocumentType.PURCHASE: DocumentModels(PurchaseInvoice, PurchaseInvoiceItem, PurchaseInvoicePayment, PartyType.SUPPLIER),
}


def models_for(document_type: DocumentType) -> DocumentModels:
    return DOCUMENT_MODELS[DocumentType(document_type)]
