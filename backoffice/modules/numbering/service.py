"""
Sequential invoice numbering per document type and fiscal year.

Numbers look like ``SRIHM/07/25-26``. The counter lives in
invoice_number_sequences and is read with SELECT ... FOR UPDATE inside the
caller's transaction, so two concurrent creations cannot get the same serial.
A counter that does not exist yet is seeded from the highest serial already
present in the invoice table, so existing invoices are never re-numbered.
"""
import logging
import re
from datetime import date
from typing import Optional, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.common.exceptions import ValidationError
from backoffice.core.config import settings
from backoffice.modules.invoices.models import DocumentType, models_for
from backoffice.modules.numbering.models import InvoiceNumberSequence
from backoffice.modules.numbering.schemas import NextInvoiceNumber

logger = logging.getLogger(__name__)

_FY_LONG = re.compile(r"^(\d{4})-(\d{4})$")
_FY_MIXED = re.compile(r"^(\d{4})-(\d{2})$")
_FY_SHORT = re.compile(r"^(\d{2})-(\d{2})$")
_NUMBER = re.compile(r"^(?P<prefix>[^/]+)/(?P<serial>\d+)/")


def normalize_fiscal_year(fiscal_year: str) -> str:
    """Accept 2025-2026, 2025-26 or 25-26 and return 25-26."""
    value = (fiscal_year or "").strip()
    for pattern in (_FY_LONG, _FY_MIXED, _FY_SHORT):
        match = pattern.match(value)
        if match:
            start, end = match.group(1)[-2:], match.group(2)[-2:]
            if (int(start) + 1) % 100 != int(end):
                break
            return f"{start}-{end}"
    raise ValidationError("Invalid financial year", errors=[f"financial_year: {fiscal_year!r} is not a YYYY-YYYY / YY-YY year"])


def fiscal_year_for(day: date) -> str:
    """Indian fiscal year (April to March) containing the given date."""
    start = day.year if day.month >= 4 else day.year - 1
    return f"{start % 100:02d}-{(start + 1) % 100:02d}"


def current_fiscal_year() -> str:
    return fiscal_year_for(date.today())


def fiscal_year_variants(fiscal_year: str) -> Set[str]:
    """Every stored spelling of a fiscal year: 25-26, 2025-26, 2025-2026."""
    short = normalize_fiscal_year(fiscal_year)
    start, end = short.split("-")
    century = "20"
    return {short, f"{century}{start}-{end}", f"{century}{start}-{century}{end}"}


def prefix_for(document_type: DocumentType) -> str:
    if DocumentType(document_type) == DocumentType.SALES:
        return settings.SALES_INVOICE_PREFIX
    return settings.PURCHASE_INVOICE_PREFIX


def format_number(prefix: str, serial: int, fiscal_year: str, width: Optional[int] = None) -> str:
    width = width or settings.INVOICE_SERIAL_WIDTH
    return f"{prefix}/{serial:0{width}d}/{normalize_fiscal_year(fiscal_year)}"


def parse_serial(invoice_number: Optional[str], prefix: Optional[str] = None) -> Optional[int]:
    """Serial part of PREFIX/<serial>/..., or None when the number has another shape."""
    if not invoice_number:
        return None
    match = _NUMBER.match(invoice_number.strip())
    if not match:
        return None
    if prefix is not None and match.group("prefix") != prefix:
        return None
    return int(match.group("serial"))


class InvoiceNumberAllocator:
    def __init__(self, db: Session):
        self.db = db

    def _scan_max_serial(self, document_type: DocumentType, fiscal_year: str, prefix: str) -> int:
        invoice_model = models_for(document_type).invoice
        numbers = self.db.query(invoice_model.invoice_number).filter(
            invoice_model.financial_year.in_(fiscal_year_variants(fiscal_year))
        ).all()
        serials = [parse_serial(number, prefix) for (number,) in numbers]
        return max([s for s in serials if s is not None], default=0)

    def _locked_sequence(self, document_type: DocumentType, fiscal_year: str) -> Optional[InvoiceNumberSequence]:
        return self.db.query(InvoiceNumberSequence).filter(
            InvoiceNumberSequence.document_type == document_type,
            InvoiceNumberSequence.financial_year == fiscal_year,
        ).with_for_update().first()

    def _get_or_seed_sequence(self, document_type: DocumentType, fiscal_year: str) -> InvoiceNumberSequence:
        sequence = self._locked_sequence(document_type, fiscal_year)
        if sequence is not None:
            return sequence

        prefix = prefix_for(document_type)
        seed = self._scan_max_serial(document_type, fiscal_year, prefix)
        try:
            with self.db.begin_nested():
                sequence = InvoiceNumberSequence(
                    document_type=document_type,
                    financial_year=fiscal_year,
                    prefix=prefix,
                    current_number=seed,
                )
                self.db.add(sequence)
            logger.info(f"Seeded {document_type.value} sequence for {fiscal_year} at {seed}")
            return sequence
        except IntegrityError:
            # Another transaction seeded it first
            return self._locked_sequence(document_type, fiscal_year)

    def next_number(self, document_type: DocumentType, fiscal_year: str) -> str:
        """Allocate the next number. Consumes a serial in the current transaction."""
        document_type = DocumentType(document_type)
        fy = normalize_fiscal_year(fiscal_year)
        sequence = self._get_or_seed_sequence(document_type, fy)
        sequence.current_number += 1
        self.db.flush()
        number = format_number(sequence.prefix, sequence.current_number, fy)
        logger.info(f"Allocated {document_type.value} invoice number {number} (serial {sequence.current_number}, FY {fy})")
        return number

    def observe_number(self, document_type: DocumentType, fiscal_year: str, invoice_number: str) -> None:
        """Move the counter past a manually entered number so it is never handed out."""
        document_type = DocumentType(document_type)
        fy = normalize_fiscal_year(fiscal_year)
        serial = parse_serial(invoice_number, prefix_for(document_type))
        if serial is None:
            return
        sequence = self._get_or_seed_sequence(document_type, fy)
        if serial > sequence.current_number:
            sequence.current_number = serial
            self.db.flush()

    def preview_number(self, document_type: DocumentType, fiscal_year: Optional[str] = None) -> NextInvoiceNumber:
        """Next number that would be allocated. Does not consume it."""
        document_type = DocumentType(document_type)
        fy = normalize_fiscal_year(fiscal_year) if fiscal_year else current_fiscal_year()
        sequence = self.db.query(InvoiceNumberSequence).filter(
            InvoiceNumberSequence.document_type == document_type,
            InvoiceNumberSequence.financial_year == fy,
        ).first()
        if sequence is not None:
            prefix, current = sequence.prefix, sequence.current_number
        else:
            prefix = prefix_for(document_type)
            current = self._scan_max_serial(document_type, fy, prefix)
        return NextInvoiceNumber(invoice_number=format_number(prefix, current + 1, fy), financial_year=fy)
