"""
Tests for payment recording and the paid / remaining / status derivation
"""
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from backoffice.common.exceptions import PaymentExceedsBalanceError, ReferenceNotFoundError
from backoffice.core.config import settings
from backoffice.modules.invoices.models import DocumentType, PaymentStatus, SalesInvoice
from backoffice.modules.payments.schemas import PaymentCreate
from backoffice.modules.payments.service import PaymentLedger, derive_payment_status


def create_invoice(client, headers, party_id, route="sales-invoices"):
    """1475.00 invoice: 10 @ 100 + 5 @ 50 at 18%"""
    payload = {
        "party_id": str(party_id),
        "invoice_date": "2025-06-10",
        "items": [
            {"description": "Bitumen VG-30", "quantity": "10", "rate": "100", "tax_rate": "18"},
            {"description": "Drum handling", "quantity": "5", "rate": "50", "tax_rate": "18"},
        ],
    }
    response = client.post(f"/{route}", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["invoice"]


def pay(client, headers, invoice_id, amount, route="sales-invoices", **extra):
    payload = {"invoice_id": invoice_id, "amount": amount, "payment_date": "2025-06-20"}
    payload.update(extra)
    return client.post(f"/{route}/record-payment", json=payload, headers=headers)


class TestDerivePaymentStatus:

    @pytest.mark.parametrize("paid,remaining,expected", [
        ("0", "1475", PaymentStatus.PENDING),
        ("1000", "475", PaymentStatus.PARTIAL),
        ("1475", "0", PaymentStatus.PAID),
        ("1500", "-25", PaymentStatus.PAID),
    ])
    def test_status(self, paid, remaining, expected):
        assert derive_payment_status(Decimal(paid), Decimal(remaining)) == expected


class TestRecordPayment:

    def test_partial_then_full(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)

        response = pay(client, auth_headers, invoice["id"], "1000", payment_mode="NEFT", reference_number="UTR123")
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["paid_amount"]) == Decimal("1000")
        assert Decimal(body["remaining_balance"]) == Decimal("475")
        assert body["payment_status"] == "PARTIAL"

        response = pay(client, auth_headers, invoice["id"], "475")
        body = response.json()
        assert Decimal(body["paid_amount"]) == Decimal("1475")
        assert Decimal(body["remaining_balance"]) == Decimal("0")
        assert body["payment_status"] == "PAID"

    def test_payment_on_purchase_invoice(self, client, auth_headers, make_supplier):
        invoice = create_invoice(client, auth_headers, make_supplier().id, route="purchase-invoices")
        response = pay(client, auth_headers, invoice["id"], "475", route="purchase-invoices")
        assert response.status_code == 200
        assert response.json()["payment_status"] == "PARTIAL"

    def test_sales_invoice_id_on_purchase_route(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        response = pay(client, auth_headers, invoice["id"], "100", route="purchase-invoices")
        assert response.status_code == 404

    def test_overpayment_is_rejected(self, client, auth_headers, db_session, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        pay(client, auth_headers, invoice["id"], "1000")

        response = pay(client, auth_headers, invoice["id"], "500")
        assert response.status_code == 400
        assert response.json()["error"] == "PaymentExceedsBalance"
        stored = db_session.query(SalesInvoice).one()
        assert stored.paid_amount == Decimal("1000.00")

    def test_paisa_tolerance(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        response = pay(client, auth_headers, invoice["id"], "1475.01")
        assert response.status_code == 200
        assert response.json()["payment_status"] == "PAID"

    def test_overpayment_when_allowed(self, client, auth_headers, make_client, monkeypatch):
        monkeypatch.setattr(settings, "ALLOW_OVERPAYMENT", True)
        invoice = create_invoice(client, auth_headers, make_client().id)
        response = pay(client, auth_headers, invoice["id"], "1500")
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["remaining_balance"]) == Decimal("-25")
        assert body["payment_status"] == "PAID"

    def test_zero_amount(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        response = pay(client, auth_headers, invoice["id"], "0")
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_unknown_invoice(self, client, auth_headers):
        response = pay(client, auth_headers, str(uuid4()), "100")
        assert response.status_code == 404
        assert response.json()["error"] == "ReferenceNotFound"

    def test_payment_resets_manual_override(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        client.patch(f"/sales-invoices/{invoice['id']}/status", json={"payment_status": "PAID"}, headers=auth_headers)
        response = pay(client, auth_headers, invoice["id"], "100")
        assert response.json()["payment_status"] == "PARTIAL"


class TestPaymentLedgerService:

    def test_record_directly(self, db_session, client, auth_headers, make_client, user_id):
        invoice = create_invoice(client, auth_headers, make_client().id)
        ledger = PaymentLedger(db_session)
        updated = ledger.record_payment(
            DocumentType.SALES,
            PaymentCreate(invoice_id=invoice["id"], amount=Decimal("200.00"), payment_date=date(2025, 6, 15)),
            user_id,
        )
        assert updated.paid_amount == Decimal("200.00")
        payment = ledger.list_payments(DocumentType.SALES, updated.id)[0]
        assert payment.recorded_by == user_id
        assert ledger.total_paid(DocumentType.SALES, updated.id) == Decimal("200.00")

    def test_overpayment_raises(self, db_session, client, auth_headers, make_client, user_id):
        invoice = create_invoice(client, auth_headers, make_client().id)
        with pytest.raises(PaymentExceedsBalanceError):
            PaymentLedger(db_session).record_payment(
                DocumentType.SALES,
                PaymentCreate(invoice_id=invoice["id"], amount=Decimal("2000")),
                user_id,
            )

    def test_unknown_invoice_raises(self, db_session, user_id):
        with pytest.raises(ReferenceNotFoundError):
            PaymentLedger(db_session).record_payment(
                DocumentType.PURCHASE, PaymentCreate(invoice_id=uuid4(), amount=Decimal("1")), user_id
            )


class TestPaymentListEndpoint:

    def test_list(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        pay(client, auth_headers, invoice["id"], "1000", payment_mode="CHEQUE", reference_number="000451")
        pay(client, auth_headers, invoice["id"], "200", payment_date="2025-06-25")

        response = client.get(f"/sales-invoices/{invoice['id']}/payments", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["payments"]) == 2
        assert Decimal(body["total_paid"]) == Decimal("1200")
        assert body["payments"][0]["payment_mode"] == "CHEQUE"

    def test_detail_lists_payments(self, client, auth_headers, make_client):
        invoice = create_invoice(client, auth_headers, make_client().id)
        pay(client, auth_headers, invoice["id"], "1000")
        response = client.get(f"/sales-invoices/{invoice['id']}", headers=auth_headers)
        assert len(response.json()["payments"]) == 1
