"""
Tests for the partner ledger (running balance per customer/supplier)
"""
import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from backoffice.common.exceptions import ReferenceNotFoundError
from backoffice.modules.ledger.schemas import LedgerDirection, LedgerEntryType
from backoffice.modules.ledger.service import PartnerLedgerView


def create_invoice(client, headers, party_id, amount="1000", invoice_date="2025-01-01",
                   route="sales-invoices", **extra):
    payload = {
        "party_id": str(party_id),
        "invoice_date": invoice_date,
        "items": [{"description": "Bitumen VG-30", "quantity": "1", "rate": amount, "tax_rate": "0"}],
    }
    payload.update(extra)
    response = client.post(f"/{route}", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["invoice"]


def pay(client, headers, invoice_id, amount, payment_date, route="sales-invoices"):
    response = client.post(
        f"/{route}/record-payment",
        json={"invoice_id": invoice_id, "amount": amount, "payment_date": payment_date},
        headers=headers,
    )
    assert response.status_code == 200
    return response.json()


class TestPartnerLedgerView:

    def test_running_balance(self, db_session, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        pay(client, auth_headers, invoice["id"], "300", "2025-01-10")

        ledger = PartnerLedgerView(db_session).build_ledger(UUID(invoice["party_id"]), as_of=date(2025, 1, 15))

        assert ledger.direction == LedgerDirection.RECEIVABLE
        assert [e.entry_type for e in ledger.entries] == [LedgerEntryType.INVOICE, LedgerEntryType.PAYMENT]
        assert [e.balance for e in ledger.entries] == [Decimal("1000.00"), Decimal("700.00")]
        assert ledger.entries[0].credit == Decimal("1000.00")
        assert ledger.entries[1].debit == Decimal("300.00")
        assert ledger.totals.total_balance == Decimal("700.00")
        assert ledger.totals.invoice_count == 1
        assert ledger.totals.payment_count == 1

    def test_same_day_invoice_precedes_payment(self, db_session, client, auth_headers, make_client):
        party_id = make_client().id
        first = create_invoice(client, auth_headers, party_id, amount="500")
        pay(client, auth_headers, first["id"], "500", "2025-01-01")
        create_invoice(client, auth_headers, party_id, amount="200")

        ledger = PartnerLedgerView(db_session).build_ledger(UUID(first["party_id"]), as_of=date(2025, 1, 2))

        assert [e.entry_type for e in ledger.entries] == [
            LedgerEntryType.INVOICE, LedgerEntryType.INVOICE, LedgerEntryType.PAYMENT
        ]
        assert [e.document_number for e in ledger.entries][:2] == ["SRIHM/01/24-25", "SRIHM/02/24-25"]
        assert ledger.entries[-1].balance == Decimal("200.00")

    def test_overdue(self, db_session, client, auth_headers, make_client):
        party_id = make_client().id
        overdue = create_invoice(client, auth_headers, party_id, amount="1000", due_date="2025-01-31")
        paid = create_invoice(client, auth_headers, party_id, amount="400", due_date="2025-01-31")
        create_invoice(client, auth_headers, party_id, amount="250", invoice_date="2025-02-20", due_date="2025-03-20")
        pay(client, auth_headers, overdue["id"], "100", "2025-01-20")
        pay(client, auth_headers, paid["id"], "400", "2025-01-20")

        ledger = PartnerLedgerView(db_session).build_ledger(party_id, as_of=date(2025, 3, 2))

        flagged = [e for e in ledger.entries if e.is_overdue]
        assert [str(e.invoice_id) for e in flagged] == [overdue["id"]]
        assert flagged[0].days_overdue == 30
        assert ledger.totals.overdue_count == 1
        assert ledger.totals.overdue_amount == Decimal("900.00")
        assert ledger.totals.total_balance == Decimal("1150.00")

    def test_supplier_ledger_is_payable(self, db_session, client, auth_headers, make_supplier):
        supplier = make_supplier()
        invoice = create_invoice(client, auth_headers, supplier.id, route="purchase-invoices")
        pay(client, auth_headers, invoice["id"], "250", "2025-01-05", route="purchase-invoices")

        ledger = PartnerLedgerView(db_session).build_ledger(supplier.id, as_of=date(2025, 1, 6))

        assert ledger.direction == LedgerDirection.PAYABLE
        assert ledger.party.party_type == "SUPPLIER"
        assert ledger.totals.total_balance == Decimal("750.00")

    def test_master_id_resolves_to_snapshot(self, db_session, client, auth_headers, make_client):
        customer = make_client()
        invoice = create_invoice(client, auth_headers, customer.id)
        ledger = PartnerLedgerView(db_session).build_ledger(customer.id)
        assert str(ledger.party.id) == invoice["party_id"]

    def test_party_without_invoices(self, db_session, client, auth_headers, make_client):
        customer = make_client()
        client.post(f"/invoice-parties/sync/clients/{customer.id}", headers=auth_headers)
        ledger = PartnerLedgerView(db_session).build_ledger(customer.id)
        assert ledger.entries == []
        assert ledger.totals.total_balance == Decimal("0")

    def test_unknown_party(self, db_session):
        with pytest.raises(ReferenceNotFoundError):
            PartnerLedgerView(db_session).build_ledger(uuid4())


class TestLedgerEndpoints:

    def test_ledger_endpoint(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        pay(client, auth_headers, invoice["id"], "300", "2025-01-10")

        response = client.get(f"/ledgers/{invoice['party_id']}", params={"as_of": "2025-01-15"}, headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["direction"] == "RECEIVABLE"
        assert [Decimal(e["balance"]) for e in body["entries"]] == [Decimal("1000"), Decimal("700")]
        assert Decimal(body["totals"]["total_balance"]) == Decimal("700")

    def test_invoice_ledger_endpoint(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        response = client.get(f"/sales-invoices/{invoice['id']}/ledger", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["party"]["id"] == invoice["party_id"]

    def test_unknown_party_endpoint(self, client, auth_headers):
        response = client.get(f"/ledgers/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
