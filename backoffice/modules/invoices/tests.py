"""
Tests for sales and purchase invoices

Covers:
- GST arithmetic (intra-state CGST/SGST split, inter-state IGST, explicit header taxes)
- Creation through the API: totals, numbering, snapshots, sales-order link
- Aggregated validation errors and unresolved references
- Duplicate numbers, including the retry of a colliding auto number
- Header updates, status override permissions and deletion
"""
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from backoffice.modules.invoices.calculator import GSTCalculator, money
from backoffice.modules.invoices.models import (
    DocumentType, SalesInvoice, SalesInvoiceItem, SalesInvoicePayment
)
from backoffice.modules.invoices.schemas import InvoiceCreate, InvoiceItemCreate
from backoffice.modules.invoices.service import InvoiceService
from backoffice.modules.numbering.models import InvoiceNumberSequence
from backoffice.modules.snapshots.models import InvoiceParty, PartyType


def sales_payload(party_id, product_id=None, **overrides):
    payload = {
        "party_id": str(party_id),
        "invoice_date": "2025-06-10",
        "items": [
            {"product_id": str(product_id) if product_id else None, "description": "Bitumen VG-30",
             "quantity": "10", "unit": "Drums", "rate": "100", "tax_rate": "18"},
            {"description": "Drum handling", "quantity": "5", "unit": "Nos", "rate": "50", "tax_rate": "18"},
        ],
    }
    payload.update(overrides)
    return payload


# ===== CALCULATOR =====

class TestGSTCalculator:

    def test_line(self):
        line = GSTCalculator("36").calculate_line(Decimal("10"), Decimal("100"), Decimal("18"))
        assert line.amount == Decimal("1000.00")
        assert line.tax_amount == Decimal("180.00")

    def test_intra_state_split(self):
        calc = GSTCalculator("36")
        assert calc.split_tax(Decimal("225"), "36") == (Decimal("112.50"), Decimal("112.50"), Decimal("0.00"))

    def test_odd_paisa_goes_to_sgst(self):
        cgst, sgst, igst = GSTCalculator("36").split_tax(Decimal("0.05"), "36")
        assert cgst + sgst == Decimal("0.05")
        assert igst == Decimal("0.00")

    def test_inter_state_is_igst(self):
        assert GSTCalculator("36").split_tax(Decimal("225"), "27") == (Decimal("0.00"), Decimal("0.00"), Decimal("225.00"))

    def test_unknown_state_is_treated_as_local(self):
        assert GSTCalculator("36").is_intra_state("00")
        assert GSTCalculator("36").is_intra_state(None)

    def test_totals(self):
        calc = GSTCalculator("36")
        lines = [calc.calculate_line(Decimal("10"), Decimal("100"), Decimal("18")),
                 calc.calculate_line(Decimal("5"), Decimal("50"), Decimal("18"))]
        totals = calc.calculate_invoice_totals(lines, "36", other_charges=Decimal("10"), round_off=Decimal("-0.40"))
        assert totals.subtotal == Decimal("1250.00")
        assert totals.tax_total == Decimal("225.00")
        assert totals.total_amount == Decimal("1484.60")

    def test_explicit_header_taxes_replace_line_tax(self):
        calc = GSTCalculator("36")
        lines = [calc.calculate_line(Decimal("1"), Decimal("1000"), Decimal("18"))]
        totals = calc.calculate_invoice_totals(lines, "36", igst_amount=Decimal("50"))
        assert (totals.cgst_amount, totals.sgst_amount, totals.igst_amount) == (
            Decimal("0.00"), Decimal("0.00"), Decimal("50.00"))
        assert totals.total_amount == Decimal("1050.00")

    def test_money_rounds_half_up(self):
        assert money(Decimal("2.345")) == Decimal("2.35")
        assert money(None) == Decimal("0.00")


# ===== CREATE =====

class TestCreateInvoice:

    def test_create_sales_invoice_totals(self, client, auth_headers, make_client, make_product):
        customer = make_client()
        product = make_product()
        response = client.post("/sales-invoices", json=sales_payload(customer.id, product.id), headers=auth_headers)

        assert response.status_code == 201
        body = response.json()
        invoice = body["invoice"]
        assert Decimal(invoice["subtotal"]) == Decimal("1250")
        assert Decimal(invoice["cgst_amount"]) == Decimal("112.50")
        assert Decimal(invoice["sgst_amount"]) == Decimal("112.50")
        assert Decimal(invoice["igst_amount"]) == Decimal("0")
        assert Decimal(invoice["total_amount"]) == Decimal("1475")
        assert Decimal(invoice["paid_amount"]) == Decimal("0")
        assert Decimal(invoice["remaining_balance"]) == Decimal("1475")
        assert invoice["payment_status"] == "PENDING"
        assert invoice["invoice_status"] == "DRAFT"
        assert invoice["invoice_number"] == "SRIHM/01/25-26"
        assert invoice["financial_year"] == "25-26"
        assert invoice["party_name"] == customer.name
        assert invoice["due_date"] == "2025-07-10"

        assert len(body["items"]) == 2
        first, second = body["items"]
        assert first["unit"] == "DRUM"
        assert first["master_product_id"] == str(product.id)
        assert first["product_id"] is not None
        assert second["unit"] == "PIECE"
        assert second["product_id"] is None
        assert Decimal(second["amount"]) == Decimal("250")

    def test_zero_credit_days_means_due_on_invoice_date(self, client, auth_headers, make_client):
        customer = make_client(payment_terms=0)
        response = client.post("/sales-invoices", json=sales_payload(customer.id), headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["invoice"]["due_date"] == "2025-06-10"

    def test_numbers_are_sequential(self, client, auth_headers, make_client):
        customer = make_client()
        first = client.post("/sales-invoices", json=sales_payload(customer.id, financial_year="2025-2026"), headers=auth_headers)
        second = client.post("/sales-invoices", json=sales_payload(customer.id, financial_year="2025-2026"), headers=auth_headers)
        assert first.json()["invoice"]["invoice_number"] == "SRIHM/01/25-26"
        assert second.json()["invoice"]["invoice_number"] == "SRIHM/02/25-26"

    def test_client_master_synced_once(self, client, auth_headers, db_session, make_client):
        customer = make_client()
        client.post("/sales-invoices", json=sales_payload(customer.id), headers=auth_headers)
        client.post("/sales-invoices", json=sales_payload(customer.id), headers=auth_headers)
        assert db_session.query(InvoiceParty).count() == 1

    def test_snapshot_id_is_accepted(self, client, auth_headers, db_session):
        party = InvoiceParty(party_name="Cash Sales", party_type=PartyType.CUSTOMER)
        db_session.add(party)
        db_session.commit()
        response = client.post("/sales-invoices", json=sales_payload(party.id), headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["invoice"]["party_id"] == str(party.id)

    def test_inter_state_purchase_uses_igst(self, client, auth_headers, make_supplier):
        supplier = make_supplier()
        payload = sales_payload(supplier.id, supplier_invoice_number="GB/778")
        response = client.post("/purchase-invoices", json=payload, headers=auth_headers)

        assert response.status_code == 201
        invoice = response.json()["invoice"]
        assert Decimal(invoice["igst_amount"]) == Decimal("225")
        assert Decimal(invoice["cgst_amount"]) == Decimal("0")
        assert Decimal(invoice["total_amount"]) == Decimal("1475")
        assert invoice["supplier_invoice_number"] == "GB/778"
        assert invoice["party_state_code"] == "24"

    def test_client_id_is_not_a_supplier(self, client, auth_headers, make_client):
        customer = make_client()
        response = client.post("/purchase-invoices", json=sales_payload(customer.id), headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ReferenceNotFound"

    def test_rate_defaults_to_product_rate(self, client, auth_headers, make_client, make_product):
        customer = make_client()
        product = make_product(rate=Decimal("250.00"), gst_rate=Decimal("5.00"))
        payload = sales_payload(customer.id, items=[{"product_id": str(product.id), "quantity": "2"}])
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 201
        item = response.json()["items"][0]
        assert Decimal(item["rate"]) == Decimal("250")
        assert Decimal(item["tax_rate"]) == Decimal("5")
        assert Decimal(response.json()["invoice"]["total_amount"]) == Decimal("525")

    def test_submitted_status_and_explicit_year(self, client, auth_headers, make_client):
        customer = make_client()
        payload = sales_payload(customer.id, invoice_status="SUBMITTED", financial_year="2024-25", invoice_date="2025-03-20")
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        invoice = response.json()["invoice"]
        assert invoice["invoice_status"] == "SUBMITTED"
        assert invoice["invoice_number"] == "SRIHM/01/24-25"


class TestCreateValidation:

    def test_errors_are_reported_together(self, client, auth_headers, make_client):
        customer = make_client()
        payload = sales_payload(customer.id, items=[
            {"description": "Bitumen", "quantity": "0", "rate": "-5"},
            {"quantity": "1"},
        ])
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert "items[0].quantity: must be greater than zero" in body["errors"]
        assert "items[0].rate: must not be negative" in body["errors"]
        assert "items[1].description: required for lines without a product" in body["errors"]
        assert "items[1].rate: required for lines without a product" in body["errors"]

    def test_empty_items(self, client, auth_headers, make_client):
        response = client.post("/sales-invoices", json=sales_payload(make_client().id, items=[]), headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["errors"] == ["items: at least one line item is required"]

    def test_zero_total_is_rejected(self, client, auth_headers, make_client):
        payload = sales_payload(make_client().id, items=[{"description": "Sample", "quantity": "1", "rate": "0"}])
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_unknown_party(self, client, auth_headers, db_session):
        response = client.post("/sales-invoices", json=sales_payload(uuid4()), headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ReferenceNotFound"
        assert db_session.query(SalesInvoice).count() == 0

    def test_unknown_product_rolls_back_snapshots(self, client, auth_headers, db_session, make_client):
        customer = make_client()
        payload = sales_payload(customer.id, items=[{"product_id": str(uuid4()), "quantity": "1", "rate": "10"}])
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "ReferenceNotFound"
        assert db_session.query(InvoiceParty).count() == 0
        assert db_session.query(SalesInvoice).count() == 0

    def test_unknown_sales_order(self, client, auth_headers, make_client):
        payload = sales_payload(make_client().id, sales_order_number="SO/404")
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ReferenceNotFound"

    def test_purchase_cannot_reference_sales_order(self, client, auth_headers, make_supplier):
        payload = sales_payload(make_supplier().id, sales_order_number="SO/1")
        response = client.post("/purchase-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_bad_financial_year(self, client, auth_headers, make_client):
        payload = sales_payload(make_client().id, financial_year="2025")
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 400

    def test_malformed_body(self, client, auth_headers):
        response = client.post("/sales-invoices", json={"items": "nope"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"


class TestSalesOrderLink:

    def test_link_by_number_stores_fk_and_number(self, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        order = make_sales_order("SO/2025/001", [(product, 100, 100)], client=customer)
        payload = sales_payload(customer.id, product.id, sales_order_number="SO/2025/001")
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)

        invoice = response.json()["invoice"]
        assert invoice["sales_order_id"] == str(order.id)
        assert invoice["sales_order_number"] == "SO/2025/001"

    def test_mismatched_id_and_number(self, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        order = make_sales_order("SO/2025/001", [(product, 10, 100)])
        payload = sales_payload(customer.id, sales_order_id=str(order.id), sales_order_number="SO/2025/999")
        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"


class TestDuplicateNumbers:

    def test_manual_duplicate_is_409(self, client, auth_headers, make_client):
        customer = make_client()
        payload = sales_payload(customer.id, invoice_number="SRIHM/10/25-26")
        assert client.post("/sales-invoices", json=payload, headers=auth_headers).status_code == 201

        response = client.post("/sales-invoices", json=payload, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateInvoiceNumber"

    def test_manual_number_moves_counter(self, client, auth_headers, make_client):
        customer = make_client()
        client.post("/sales-invoices", json=sales_payload(customer.id, invoice_number="SRIHM/10/25-26"), headers=auth_headers)
        response = client.post("/sales-invoices", json=sales_payload(customer.id), headers=auth_headers)
        assert response.json()["invoice"]["invoice_number"] == "SRIHM/11/25-26"

    def test_same_number_in_other_table_is_allowed(self, client, auth_headers, make_client, make_supplier):
        sales = client.post("/sales-invoices", json=sales_payload(make_client().id), headers=auth_headers)
        purchase = client.post("/purchase-invoices", json=sales_payload(make_supplier().id), headers=auth_headers)
        assert sales.json()["invoice"]["invoice_number"] == purchase.json()["invoice"]["invoice_number"]

    def test_colliding_auto_number_is_retried(self, db_session, make_client, user_id):
        customer = make_client()
        service = InvoiceService(db_session)
        data = InvoiceCreate(
            party_id=customer.id,
            invoice_date=date(2025, 6, 10),
            items=[InvoiceItemCreate(description="Bitumen", quantity=Decimal("1"), rate=Decimal("100"))],
        )
        first = service.create_invoice(DocumentType.SALES, data, user_id)
        assert first.invoice_number == "SRIHM/01/25-26"

        # Counter falls behind the table, as after a restore from backup
        sequence = db_session.query(InvoiceNumberSequence).one()
        sequence.current_number = 0
        db_session.commit()

        second = service.create_invoice(DocumentType.SALES, data, user_id)
        assert second.invoice_number == "SRIHM/02/25-26"
        assert db_session.query(SalesInvoice).count() == 2


# ===== READ / UPDATE / DELETE =====

class TestInvoiceLifecycle:

    def _create(self, client, auth_headers, make_client, **overrides):
        response = client.post("/sales-invoices", json=sales_payload(make_client().id, **overrides), headers=auth_headers)
        assert response.status_code == 201
        return response.json()["invoice"]

    def test_detail_includes_items_payments_and_party(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.get(f"/sales-invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 2
        assert body["payments"] == []
        assert body["party"]["party_type"] == "CUSTOMER"

    def test_detail_of_other_type_is_404(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.get(f"/purchase-invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 404

    def test_list_filters(self, client, auth_headers, make_client):
        self._create(client, auth_headers, make_client)
        response = client.get("/sales-invoices", params={"financial_year": "2025-2026"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        response = client.get("/sales-invoices", params={"payment_status": "PAID"}, headers=auth_headers)
        assert response.json()["total"] == 0

    def test_update_recomputes_totals(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.put(
            f"/sales-invoices/{invoice['id']}",
            json={"other_charges": "25", "round_off": "0.50", "notes": "Freight added"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["total_amount"]) == Decimal("1500.50")
        assert Decimal(body["remaining_balance"]) == Decimal("1500.50")
        assert body["notes"] == "Freight added"

    def test_date_change_within_financial_year(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.put(f"/sales-invoices/{invoice['id']}", json={"invoice_date": "2026-03-31"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["invoice_date"] == "2026-03-31"
        assert response.json()["invoice_number"] == "SRIHM/01/25-26"

    def test_date_change_across_financial_year_is_rejected(self, client, auth_headers, db_session, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.put(f"/sales-invoices/{invoice['id']}", json={"invoice_date": "2026-05-01"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        stored = db_session.get(SalesInvoice, UUID(invoice["id"]))
        db_session.refresh(stored)
        assert stored.invoice_date == date(2025, 6, 10)
        assert stored.financial_year == "25-26"

    def test_client_paid_amount_is_ignored(self, client, auth_headers, db_session, make_client):
        invoice = self._create(client, auth_headers, make_client)
        db_session.add(SalesInvoicePayment(invoice_id=UUID(invoice["id"]), amount=Decimal("475.00"),
                                           payment_date=date(2025, 6, 20)))
        db_session.commit()

        response = client.put(
            f"/sales-invoices/{invoice['id']}",
            json={"paid_amount": "1475", "remaining_balance": "0"},
            headers=auth_headers,
        )
        body = response.json()
        assert Decimal(body["paid_amount"]) == Decimal("475")
        assert Decimal(body["remaining_balance"]) == Decimal("1000")
        assert body["payment_status"] == "PARTIAL"

    def test_update_cannot_make_total_zero(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        response = client.put(f"/sales-invoices/{invoice['id']}", json={"round_off": "-1475"}, headers=auth_headers)
        assert response.status_code == 400

    def test_status_override_requires_finance_role(self, client, auth_headers, employee_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        url = f"/sales-invoices/{invoice['id']}/status"

        forbidden = client.patch(url, json={"payment_status": "OVERDUE"}, headers=employee_headers)
        assert forbidden.status_code == 403

        response = client.patch(url, json={"payment_status": "OVERDUE"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["payment_status"] == "OVERDUE"

    def test_override_is_rederived_on_update(self, client, auth_headers, make_client):
        invoice = self._create(client, auth_headers, make_client)
        client.patch(f"/sales-invoices/{invoice['id']}/status", json={"payment_status": "PAID"}, headers=auth_headers)
        response = client.put(f"/sales-invoices/{invoice['id']}", json={"notes": "check"}, headers=auth_headers)
        assert response.json()["payment_status"] == "PENDING"

    def test_delete_cascades(self, client, auth_headers, db_session, make_client):
        invoice = self._create(client, auth_headers, make_client)
        db_session.add(SalesInvoicePayment(invoice_id=UUID(invoice["id"]), amount=Decimal("100.00")))
        db_session.commit()

        response = client.delete(f"/sales-invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 204
        assert db_session.query(SalesInvoice).count() == 0
        assert db_session.query(SalesInvoiceItem).count() == 0
        assert db_session.query(SalesInvoicePayment).count() == 0
        # Snapshots outlive the invoice
        assert db_session.query(InvoiceParty).count() == 1

    def test_delete_unknown(self, client, auth_headers):
        response = client.delete(f"/sales-invoices/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
