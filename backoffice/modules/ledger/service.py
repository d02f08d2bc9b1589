"""
Running-balance statement for one customer or supplier.

Customers are read from sales invoices (receivable), suppliers from
purchase invoices (payable). In both directions an invoice is a credit
event and a payment a debit event, so the running balance is always the
amount still outstanding with that party.
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from backoffice.common.exceptions import ReferenceNotFoundError
from backoffice.modules.invoices.calculator import ZERO, money
from backoffice.modules.invoices.models import DocumentType, PaymentStatus, models_for
from backoffice.modules.ledger.schemas import (
    LedgerDirection, LedgerEntry, LedgerEntryType, LedgerTotals, PartnerLedger
)
from backoffice.modules.snapshots.models import InvoiceParty, PartyType
from backoffice.modules.snapshots.schemas import InvoicePartyOut
from backoffice.modules.snapshots.service import PartySnapshotSync

logger = logging.getLogger(__name__)

# Same-day ordering: invoices before the payments made against them
_INVOICE_RANK = 0
_PAYMENT_RANK = 1


class PartnerLedgerView:
    def __init__(self, db: Session):
        self.db = db

    def resolve_party(self, party_id: UUID) -> InvoiceParty:
        """Accepts a snapshot id or the id of a linked client/supplier."""
        party = self.db.get(InvoiceParty, party_id)
        if party is None:
            party = PartySnapshotSync(self.db).find_by_master_id(party_id)
        if party is None:
            raise ReferenceNotFoundError(f"Party {party_id} not found")
        return party

    def build_ledger(self, party_id: UUID, as_of: Optional[date] = None) -> PartnerLedger:
        as_of = as_of or date.today()
        party = self.resolve_party(party_id)

        if party.party_type == PartyType.CUSTOMER:
            document_type, direction = DocumentType.SALES, LedgerDirection.RECEIVABLE
        else:
            document_type, direction = DocumentType.PURCHASE, LedgerDirection.PAYABLE
        models = models_for(document_type)

        invoices = self.db.query(models.invoice).filter(models.invoice.party_id == party.id).all()
        payments = self.db.query(models.payment).join(
            models.invoice, models.payment.invoice_id == models.invoice.id
        ).filter(models.invoice.party_id == party.id).all()
        numbers = {invoice.id: invoice.invoice_number for invoice in invoices}

        events = []
        for invoice in invoices:
            key = (invoice.invoice_date, _INVOICE_RANK, invoice.created_at, invoice.invoice_number, str(invoice.id))
            events.append((key, invoice))
        for payment in payments:
            key = (payment.payment_date, _PAYMENT_RANK, payment.created_at, numbers[payment.invoice_id], str(payment.id))
            events.append((key, payment))
        events.sort(key=lambda event: event[0])

        entries: List[LedgerEntry] = []
        balance = ZERO
        total_credit = total_debit = overdue_amount = ZERO
        overdue_count = 0

        for (_, rank, _, number, _), record in events:
            if rank == _INVOICE_RANK:
                credit, debit = money(record.total_amount), ZERO
                is_overdue = (
                    record.due_date is not None
                    and record.due_date < as_of
                    and record.payment_status != PaymentStatus.PAID
                )
                days_overdue = (as_of - record.due_date).days if is_overdue else 0
                if is_overdue:
                    overdue_count += 1
                    overdue_amount += money(record.remaining_balance)
                balance += credit
                total_credit += credit
                entries.append(LedgerEntry(
                    entry_type=LedgerEntryType.INVOICE,
                    entry_date=record.invoice_date,
                    document_number=number,
                    invoice_id=record.id,
                    description=f"Invoice {number}",
                    credit=credit,
                    debit=debit,
                    balance=balance,
                    due_date=record.due_date,
                    payment_status=record.payment_status,
                    is_overdue=is_overdue,
                    days_overdue=days_overdue,
                ))
            else:
                credit, debit = ZERO, money(record.amount)
                balance -= debit
                total_debit += debit
                mode = record.payment_mode.value if record.payment_mode else "PAYMENT"
                description = f"{mode} against {number}"
                if record.reference_number:
                    description += f" (ref {record.reference_number})"
                entries.append(LedgerEntry(
                    entry_type=LedgerEntryType.PAYMENT,
                    entry_date=record.payment_date,
                    document_number=number,
                    invoice_id=record.invoice_id,
                    payment_id=record.id,
                    description=description,
                    credit=credit,
                    debit=debit,
                    balance=balance,
                ))

        totals = LedgerTotals(
            total_credit=total_credit,
            total_debit=total_debit,
            total_balance=total_credit - total_debit,
            overdue_count=overdue_count,
            overdue_amount=overdue_amount,
            invoice_count=len(invoices),
            payment_count=len(payments),
        )
        logger.debug(f"Ledger for {party.party_name}: {len(entries)} entries, balance {totals.total_balance}")
        return PartnerLedger(
            party=InvoicePartyOut.model_validate(party),
            direction=direction,
            as_of=as_of,
            entries=entries,
            totals=totals,
        )

    def build_ledger_for_invoice(self, document_type: DocumentType, invoice_id: UUID, as_of: Optional[date] = None) -> PartnerLedger:
        invoice_model = models_for(document_type).invoice
        invoice = self.db.get(invoice_model, invoice_id)
        if invoice is None:
            raise ReferenceNotFoundError(f"{DocumentType(document_type).value.title()} invoice {invoice_id} not found")
        return self.build_ledger(invoice.party_id, as_of)
