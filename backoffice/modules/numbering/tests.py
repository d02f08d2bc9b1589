"""
Tests for fiscal-year helpers and invoice number allocation
"""
import pytest
from datetime import date

from backoffice.common.exceptions import ValidationError
from backoffice.modules.invoices.models import DocumentType, SalesInvoice
from backoffice.modules.numbering.models import InvoiceNumberSequence
from backoffice.modules.numbering.service import (
    InvoiceNumberAllocator, fiscal_year_for, fiscal_year_variants,
    format_number, normalize_fiscal_year, parse_serial
)
from backoffice.modules.snapshots.models import InvoiceParty, PartyType


def _legacy_invoice(db_session, number, financial_year):
    party = db_session.query(InvoiceParty).first()
    if party is None:
        party = InvoiceParty(party_name="Legacy Customer", party_type=PartyType.CUSTOMER)
        db_session.add(party)
        db_session.flush()
    invoice = SalesInvoice(
        invoice_number=number,
        financial_year=financial_year,
        invoice_date=date(2025, 6, 1),
        party_id=party.id,
        party_name=party.party_name,
        total_amount=100,
        remaining_balance=100,
    )
    db_session.add(invoice)
    db_session.commit()
    return invoice


class TestFiscalYear:

    @pytest.mark.parametrize("raw", ["2025-2026", "2025-26", "25-26", " 25-26 "])
    def test_normalize(self, raw):
        assert normalize_fiscal_year(raw) == "25-26"

    @pytest.mark.parametrize("raw", ["", "2025", "25-27", "abc", "2025/26"])
    def test_normalize_rejects_garbage(self, raw):
        with pytest.raises(ValidationError):
            normalize_fiscal_year(raw)

    def test_century_rollover(self):
        assert normalize_fiscal_year("2099-2100") == "99-00"

    def test_april_to_march(self):
        assert fiscal_year_for(date(2025, 4, 1)) == "25-26"
        assert fiscal_year_for(date(2026, 3, 31)) == "25-26"
        assert fiscal_year_for(date(2025, 3, 31)) == "24-25"

    def test_variants(self):
        assert fiscal_year_variants("2025-26") == {"25-26", "2025-26", "2025-2026"}


class TestNumberFormat:

    def test_format(self):
        assert format_number("SRIHM", 1, "2025-2026") == "SRIHM/01/25-26"
        assert format_number("SRIHM", 123, "25-26") == "SRIHM/123/25-26"
        assert format_number("INV", 7, "25-26", width=4) == "INV/0007/25-26"

    def test_parse_serial(self):
        assert parse_serial("SRIHM/07/25-26") == 7
        assert parse_serial("SRIHM/07/25-26", prefix="SRIHM") == 7
        assert parse_serial("OTHER/07/25-26", prefix="SRIHM") is None
        assert parse_serial("manual-42") is None
        assert parse_serial(None) is None


class TestInvoiceNumberAllocator:

    def test_sequential_numbers(self, db_session):
        allocator = InvoiceNumberAllocator(db_session)
        assert allocator.next_number(DocumentType.SALES, "2025-2026") == "SRIHM/01/25-26"
        assert allocator.next_number(DocumentType.SALES, "2025-2026") == "SRIHM/02/25-26"

    def test_counters_are_per_type_and_year(self, db_session):
        allocator = InvoiceNumberAllocator(db_session)
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/01/25-26"
        assert allocator.next_number(DocumentType.PURCHASE, "25-26") == "SRIHM/01/25-26"
        assert allocator.next_number(DocumentType.SALES, "26-27") == "SRIHM/01/26-27"
        assert db_session.query(InvoiceNumberSequence).count() == 3

    def test_seeded_from_existing_invoices(self, db_session):
        # Stored with the long fiscal-year spelling
        _legacy_invoice(db_session, "SRIHM/07/25-26", "2025-2026")
        _legacy_invoice(db_session, "SRIHM/03/25-26", "25-26")
        _legacy_invoice(db_session, "MANUAL-99", "25-26")

        allocator = InvoiceNumberAllocator(db_session)
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/08/25-26"

    def test_other_years_do_not_seed(self, db_session):
        _legacy_invoice(db_session, "SRIHM/40/24-25", "24-25")
        allocator = InvoiceNumberAllocator(db_session)
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/01/25-26"

    def test_preview_does_not_consume(self, db_session):
        allocator = InvoiceNumberAllocator(db_session)
        preview = allocator.preview_number(DocumentType.SALES, "25-26")
        assert preview.invoice_number == "SRIHM/01/25-26"
        assert preview.financial_year == "25-26"
        assert allocator.preview_number(DocumentType.SALES, "25-26").invoice_number == "SRIHM/01/25-26"
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/01/25-26"
        assert allocator.preview_number(DocumentType.SALES, "25-26").invoice_number == "SRIHM/02/25-26"

    def test_observe_manual_number(self, db_session):
        allocator = InvoiceNumberAllocator(db_session)
        allocator.observe_number(DocumentType.SALES, "25-26", "SRIHM/15/25-26")
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/16/25-26"

    def test_observe_ignores_foreign_shapes(self, db_session):
        allocator = InvoiceNumberAllocator(db_session)
        allocator.observe_number(DocumentType.SALES, "25-26", "TALLY-0042")
        assert allocator.next_number(DocumentType.SALES, "25-26") == "SRIHM/01/25-26"


class TestNextInvoiceNumberEndpoint:

    def test_preview_endpoint(self, client, auth_headers):
        response = client.get(
            "/next-invoice-number",
            params={"type": "SALES", "financialYear": "2025-2026"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"invoiceNumber": "SRIHM/01/25-26", "financialYear": "25-26"}

    def test_defaults_to_current_year(self, client, auth_headers):
        response = client.get("/next-invoice-number", params={"type": "PURCHASE"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["financialYear"] == fiscal_year_for(date.today())

    def test_bad_type_is_a_validation_error(self, client, auth_headers):
        response = client.get("/next-invoice-number", params={"type": "QUOTE"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
