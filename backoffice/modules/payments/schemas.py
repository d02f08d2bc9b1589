from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from backoffice.modules.invoices.models import PaymentMode


class PaymentCreate(BaseModel):
    invoice_id: UUID
    amount: Decimal = Field(..., gt=0, description="Amount received or paid")
    payment_date: date = Field(default_factory=date.today)
    payment_mode: PaymentMode = PaymentMode.BANK_TRANSFER
    reference_number: Optional[str] = Field(None, max_length=100, description="UTR, cheque number, etc.")
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    amount: Decimal
    payment_date: date
    payment_mode: PaymentMode
    reference_number: Optional[str]
    notes: Optional[str]
    recorded_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentList(BaseModel):
    payments: List[PaymentOut]
    total_paid: Decimal
