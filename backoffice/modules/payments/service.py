"""
Payment recording for sales and purchase invoices.

The invoice row is locked, the payment inserted, and paid / remaining /
status are then recomputed from the full set of payment rows, never by
adding the new amount to a cached figure.
"""
import logging
from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.common.exceptions import (
    BackofficeError, PaymentExceedsBalanceError, ReferenceNotFoundError, ValidationError
)
from backoffice.core.config import settings
from backoffice.modules.invoices.calculator import ZERO, money
from backoffice.modules.invoices.models import DocumentType, PaymentStatus, models_for
from backoffice.modules.payments.schemas import PaymentCreate

logger = logging.getLogger(__name__)


def derive_payment_status(paid_amount: Decimal, remaining_balance: Decimal) -> PaymentStatus:
    if paid_amount <= 0:
        return PaymentStatus.PENDING
    if remaining_balance <= 0:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def apply_paid_amount(invoice, paid_amount: Decimal) -> None:
    """Write paid, remaining and status onto an invoice header."""
    invoice.paid_amount = money(paid_amount)
    invoice.remaining_balance = money(invoice.total_amount) - invoice.paid_amount
    invoice.payment_status = derive_payment_status(invoice.paid_amount, invoice.remaining_balance)


class PaymentLedger:
    def __init__(self, db: Session):
        self.db = db

    def _get_invoice(self, document_type: DocumentType, invoice_id: UUID, lock: bool = False):
        invoice_model = models_for(document_type).invoice
        query = self.db.query(invoice_model).filter(invoice_model.id == invoice_id)
        if lock:
            query = query.with_for_update()
        invoice = query.first()
        if invoice is None:
            raise ReferenceNotFoundError(f"{DocumentType(document_type).value.title()} invoice {invoice_id} not found")
        return invoice

    def total_paid(self, document_type: DocumentType, invoice_id: UUID) -> Decimal:
        payment_model = models_for(document_type).payment
        total = self.db.query(func.coalesce(func.sum(payment_model.amount), 0)).filter(
            payment_model.invoice_id == invoice_id
        ).scalar()
        return money(total)

    def recompute(self, document_type: DocumentType, invoice) -> None:
        """Re-derive paid / remaining / status of an invoice from its payment rows."""
        self.db.flush()
        apply_paid_amount(invoice, self.total_paid(document_type, invoice.id))

    def record_payment(self, document_type: DocumentType, payment_data: PaymentCreate, user_id: UUID):
        """
        Record a payment against an invoice and return the updated invoice.

        Over-payment beyond PAYMENT_TOLERANCE is rejected unless
        ALLOW_OVERPAYMENT is set, in which case the balance goes negative.
        """
        document_type = DocumentType(document_type)
        amount = money(payment_data.amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero", errors=["amount: must be > 0"])

        try:
            invoice = self._get_invoice(document_type, payment_data.invoice_id, lock=True)
            payment_model = models_for(document_type).payment

            outstanding = money(invoice.total_amount) - self.total_paid(document_type, invoice.id)
            if not settings.ALLOW_OVERPAYMENT and amount > outstanding + settings.PAYMENT_TOLERANCE:
                raise PaymentExceedsBalanceError(
                    f"Payment of {amount} exceeds the outstanding balance of {max(outstanding, ZERO)}",
                    errors=[f"amount: at most {max(outstanding, ZERO)} can be recorded"]
                )

            payment = payment_model(
                invoice_id=invoice.id,
                amount=amount,
                payment_date=payment_data.payment_date,
                payment_mode=payment_data.payment_mode,
                reference_number=payment_data.reference_number,
                notes=payment_data.notes,
                recorded_by=user_id,
            )
            self.db.add(payment)
            self.recompute(document_type, invoice)
            self.db.commit()
            self.db.refresh(invoice)

            logger.info(
                f"Recorded {amount} on {document_type.value} invoice {invoice.invoice_number}: "
                f"paid={invoice.paid_amount} remaining={invoice.remaining_balance} status={invoice.payment_status.value}"
            )
            return invoice

        except BackofficeError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error recording payment on invoice {payment_data.invoice_id}: {e}")
            raise BackofficeError("Error recording payment") from e

    def list_payments(self, document_type: DocumentType, invoice_id: UUID) -> List:
        invoice = self._get_invoice(document_type, invoice_id)
        payment_model = models_for(document_type).payment
        return self.db.query(payment_model).filter(
            payment_model.invoice_id == invoice.id
        ).order_by(payment_model.payment_date, payment_model.created_at).all()
