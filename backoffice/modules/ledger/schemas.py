from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date
from enum import Enum
from backoffice.modules.invoices.models import PaymentStatus
from backoffice.modules.snapshots.schemas import InvoicePartyOut


class LedgerDirection(str, Enum):
    RECEIVABLE = "RECEIVABLE"   # customer owes us
    PAYABLE = "PAYABLE"         # we owe the supplier


class LedgerEntryType(str, Enum):
    INVOICE = "INVOICE"
    PAYMENT = "PAYMENT"


class LedgerEntry(BaseModel):
    entry_type: LedgerEntryType
    entry_date: date
    document_number: str
    invoice_id: UUID
    payment_id: Optional[UUID] = None
    description: str
    credit: Decimal
    debit: Decimal
    balance: Decimal
    due_date: Optional[date] = None
    payment_status: Optional[PaymentStatus] = None
    is_overdue: bool = False
    days_overdue: int = 0


class LedgerTotals(BaseModel):
    total_credit: Decimal
    total_debit: Decimal
    total_balance: Decimal
    overdue_count: int
    overdue_amount: Decimal
    invoice_count: int
    payment_count: int


class PartnerLedger(BaseModel):
    party: InvoicePartyOut
    direction: LedgerDirection
    as_of: date
    entries: List[LedgerEntry]
    totals: LedgerTotals
