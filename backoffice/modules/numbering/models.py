from backoffice.database.database import Base
from sqlalchemy import Column, Integer, String, Enum, UniqueConstraint, Uuid
from uuid import uuid4
from backoffice.common.mixins import TimestampMixin
from backoffice.modules.invoices.models import DocumentType


class InvoiceNumberSequence(Base, TimestampMixin):
    """Last serial handed out per document type and fiscal year"""
    __tablename__ = "invoice_number_sequences"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    document_type = Column(Enum(DocumentType), nullable=False)
    financial_year = Column(String(5), nullable=False)  # short form, "25-26"
    prefix = Column(String(20), nullable=False)
    current_number = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("document_type", "financial_year", name="uq_number_sequence_type_fy"),
    )
