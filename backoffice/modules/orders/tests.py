"""
Tests for sales order fulfilment (ordered vs invoiced quantities)
"""
import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID

from backoffice.common.exceptions import ReferenceNotFoundError
from backoffice.modules.invoices.models import SalesInvoice
from backoffice.modules.orders.models import SalesOrderStatus
from backoffice.modules.orders.service import OrderFulfillmentReconciler


def invoice_against_order(client, headers, customer, order_number, lines):
    """lines: [(product_master, quantity), ...] invoiced at 100 each"""
    payload = {
        "party_id": str(customer.id),
        "invoice_date": "2025-06-10",
        "sales_order_number": order_number,
        "items": [
            {"product_id": str(product.id), "quantity": str(qty), "rate": "100"}
            for product, qty in lines
        ],
    }
    response = client.post("/sales-invoices", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["invoice"]


class TestOrderFulfillmentReconciler:

    def test_pending_after_two_invoices(self, db_session, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        make_sales_order("SO/2025/014", [(product, 100, 100)], client=customer)

        invoice_against_order(client, auth_headers, customer, "SO/2025/014", [(product, 40)])
        invoice_against_order(client, auth_headers, customer, "SO/2025/014", [(product, 35)])

        summary = OrderFulfillmentReconciler(db_session).pending_for_order("SO/2025/014")
        assert summary.ordered_qty == Decimal("100")
        assert summary.invoiced_qty == Decimal("75")
        assert summary.pending_qty == Decimal("25")
        assert summary.invoice_count == 2
        assert summary.invoice_numbers == ["SRIHM/01/25-26", "SRIHM/02/25-26"]
        assert summary.client_name == customer.name

    def test_per_product_breakdown(self, db_session, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        bitumen = make_product()
        emulsion = make_product(name="Emulsion SS-1", unit="KG")
        make_sales_order("SO/2025/015", [(bitumen, 10, 100), (emulsion, 500, 40)], client=customer)

        invoice_against_order(client, auth_headers, customer, "SO/2025/015", [(bitumen, 10), (emulsion, 200)])

        summary = OrderFulfillmentReconciler(db_session).pending_for_order("SO/2025/015")
        lines = {line.product_id: line for line in summary.lines}
        assert lines[bitumen.id].pending_qty == Decimal("0")
        assert lines[emulsion.id].invoiced_qty == Decimal("200")
        assert lines[emulsion.id].pending_qty == Decimal("300")
        assert lines[emulsion.id].description == "Emulsion SS-1"
        assert summary.ordered_amount == Decimal("21000.00")

    def test_over_invoicing_never_goes_negative(self, db_session, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        make_sales_order("SO/2025/016", [(product, 10, 100)], client=customer)
        invoice_against_order(client, auth_headers, customer, "SO/2025/016", [(product, 12)])

        summary = OrderFulfillmentReconciler(db_session).pending_for_order("SO/2025/016")
        assert summary.invoiced_qty == Decimal("12")
        assert summary.pending_qty == Decimal("0")

    def test_legacy_invoice_matched_by_number(self, db_session, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        make_sales_order("SO/2025/017", [(product, 50, 100)], client=customer)
        invoice = invoice_against_order(client, auth_headers, customer, "SO/2025/017", [(product, 20)])

        # Rows written before the FK existed only carry the order number
        stored = db_session.get(SalesInvoice, UUID(invoice["id"]))
        stored.sales_order_id = None
        db_session.commit()

        summary = OrderFulfillmentReconciler(db_session).pending_for_order("SO/2025/017")
        assert summary.invoiced_qty == Decimal("20")
        assert summary.pending_qty == Decimal("30")

    def test_unknown_order(self, db_session):
        with pytest.raises(ReferenceNotFoundError):
            OrderFulfillmentReconciler(db_session).pending_for_order("SO/404")

    def test_only_pending_filters(self, db_session, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        make_sales_order("SO/2025/020", [(product, 10, 100)], client=customer, order_date=date(2025, 5, 1))
        make_sales_order("SO/2025/021", [(product, 10, 100)], client=customer, order_date=date(2025, 5, 2))
        cancelled = make_sales_order("SO/2025/022", [(product, 10, 100)], client=customer, order_date=date(2025, 5, 3))
        cancelled.status = SalesOrderStatus.CANCELLED
        db_session.commit()
        invoice_against_order(client, auth_headers, customer, "SO/2025/021", [(product, 10)])

        reconciler = OrderFulfillmentReconciler(db_session)
        assert [s.order_number for s in reconciler.pending_orders()] == ["SO/2025/022", "SO/2025/021", "SO/2025/020"]
        assert [s.order_number for s in reconciler.pending_orders(only_pending=True)] == ["SO/2025/020"]


class TestPendingOrderEndpoints:

    def test_order_with_slashes_in_number(self, client, auth_headers, make_client, make_product, make_sales_order):
        customer = make_client()
        product = make_product()
        make_sales_order("SO/2025/014", [(product, 100, 100)], client=customer)
        invoice_against_order(client, auth_headers, customer, "SO/2025/014", [(product, 40)])

        response = client.get("/pending-orders/SO/2025/014", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["pending_qty"]) == Decimal("60")
        assert body["status"] == "CONFIRMED"

    def test_list(self, client, auth_headers, make_product, make_sales_order):
        product = make_product()
        make_sales_order("SO/2025/030", [(product, 5, 100)])
        response = client.get("/pending-orders", params={"only_pending": "true"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["orders"][0]["client_name"] is None

    def test_unknown_order_endpoint(self, client, auth_headers):
        response = client.get("/pending-orders/SO/404", headers=auth_headers)
        assert response.status_code == 404
