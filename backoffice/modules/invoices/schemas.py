from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from backoffice.modules.invoices.models import InvoiceStatus, PaymentStatus
from backoffice.modules.payments.schemas import PaymentOut
from backoffice.modules.snapshots.schemas import InvoicePartyOut


# Line items

class InvoiceItemCreate(BaseModel):
    """
    One invoice line.

    product_id may be a product master id (synced into a snapshot), an
    existing snapshot id, or empty for a free-text line. rate and tax_rate
    default to the product's own values when omitted.
    """
    product_id: Optional[UUID] = None
    description: Optional[str] = None
    hsn_code: Optional[str] = Field(None, max_length=20)
    quantity: Decimal
    unit: Optional[str] = None
    rate: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, description="GST % for this line")


class InvoiceItemOut(BaseModel):
    id: UUID
    line_number: int
    product_id: Optional[UUID]
    master_product_id: Optional[UUID]
    description: Optional[str]
    hsn_code: Optional[str]
    quantity: Decimal
    unit: str
    rate: Decimal
    amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal

    class Config:
        from_attributes = True


# Invoice header

class InvoiceCreate(BaseModel):
    party_id: UUID = Field(..., description="Client/supplier master id or invoice party snapshot id")
    invoice_number: Optional[str] = Field(None, max_length=50, description="Leave empty to allocate the next number")
    financial_year: Optional[str] = Field(None, description="2025-2026, 2025-26 or 25-26; derived from invoice_date when empty")
    invoice_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    invoice_status: InvoiceStatus = InvoiceStatus.DRAFT
    place_of_supply: Optional[str] = Field(None, max_length=100)

    # Explicit tax amounts replace the per-line GST calculation
    cgst_amount: Optional[Decimal] = Field(None, ge=0)
    sgst_amount: Optional[Decimal] = Field(None, ge=0)
    igst_amount: Optional[Decimal] = Field(None, ge=0)
    other_charges: Decimal = Decimal('0')
    round_off: Decimal = Decimal('0')
    notes: Optional[str] = None

    # Sales only
    sales_order_id: Optional[UUID] = None
    sales_order_number: Optional[str] = Field(None, max_length=50)

    # Purchase only
    supplier_invoice_number: Optional[str] = Field(None, max_length=50)
    supplier_invoice_date: Optional[date] = None

    items: List[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    invoice_status: Optional[InvoiceStatus] = None
    place_of_supply: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    cgst_amount: Optional[Decimal] = Field(None, ge=0)
    sgst_amount: Optional[Decimal] = Field(None, ge=0)
    igst_amount: Optional[Decimal] = Field(None, ge=0)
    other_charges: Optional[Decimal] = None
    round_off: Optional[Decimal] = None
    supplier_invoice_number: Optional[str] = Field(None, max_length=50)
    supplier_invoice_date: Optional[date] = None
    # Accepted for compatibility; the stored values are always re-derived from payments
    paid_amount: Optional[Decimal] = None
    remaining_balance: Optional[Decimal] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class InvoiceOut(BaseModel):
    id: UUID
    invoice_number: str
    financial_year: str
    invoice_date: date
    due_date: Optional[date]
    invoice_status: InvoiceStatus
    payment_status: PaymentStatus
    party_id: UUID
    party_name: str
    party_gstin: Optional[str]
    party_state_code: str
    place_of_supply: Optional[str]
    subtotal: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    other_charges: Decimal
    round_off: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_balance: Decimal
    notes: Optional[str]
    sales_order_id: Optional[UUID] = None
    sales_order_number: Optional[str] = None
    supplier_invoice_number: Optional[str] = None
    supplier_invoice_date: Optional[date] = None
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceCreateResponse(BaseModel):
    invoice: InvoiceOut
    items: List[InvoiceItemOut]


class InvoiceDetail(InvoiceOut):
    party: InvoicePartyOut
    items: List[InvoiceItemOut] = []
    payments: List[PaymentOut] = []


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    limit: int
    offset: int
