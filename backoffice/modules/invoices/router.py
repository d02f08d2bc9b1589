"""
Sales and purchase invoice endpoints

Both routers are built by the same factory; only the document type differs.
All endpoints require a bearer token; the manual payment-status override is
limited to ADMIN, MANAGER and ACCOUNTANT.
"""
from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID
from datetime import date

from backoffice.core.config import settings
from backoffice.dependencies.dbDependecies import db_dependency, auth_dependency, finance_auth_dependency
from backoffice.modules.invoices.models import DocumentType, PaymentStatus
from backoffice.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceDetail, InvoiceList,
    InvoiceItemOut, InvoiceCreateResponse, PaymentStatusUpdate
)
from backoffice.modules.invoices.service import InvoiceService
from backoffice.modules.ledger.schemas import PartnerLedger
from backoffice.modules.ledger.service import PartnerLedgerView
from backoffice.modules.payments.schemas import PaymentCreate, PaymentList
from backoffice.modules.payments.service import PaymentLedger


def build_invoice_router(document_type: DocumentType) -> APIRouter:
    slug = document_type.value.lower()
    router = APIRouter(
        prefix=f"/{slug}-invoices",
        tags=[f"{document_type.value.title()} Invoices"],
        responses={404: {"description": "Not found"}}
    )

    @router.post("", response_model=InvoiceCreateResponse, status_code=status.HTTP_201_CREATED)
    async def create_invoice(invoice_data: InvoiceCreate, db: db_dependency, auth_context: auth_dependency):
        """
        Create an invoice with its line items

        - **party_id**: client/supplier master id (synced into a snapshot) or invoice party id
        - **invoice_number**: optional manual number; allocated as PREFIX/NN/YY-YY when empty
        - **items**: at least one line; `product_id` may be a product master id or snapshot id
        """
        invoice = InvoiceService(db).create_invoice(document_type, invoice_data, auth_context.user_id)
        return InvoiceCreateResponse(
            invoice=InvoiceOut.model_validate(invoice),
            items=[InvoiceItemOut.model_validate(item) for item in invoice.items]
        )

    @router.get("", response_model=InvoiceList)
    async def list_invoices(
        db: db_dependency,
        auth_context: auth_dependency,
        party_id: Optional[UUID] = Query(None, description="Invoice party id"),
        payment_status: Optional[PaymentStatus] = Query(None),
        financial_year: Optional[str] = Query(None, description="2025-2026 or 25-26"),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        search: Optional[str] = Query(None, description="Invoice number or party name"),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
        offset: int = Query(0, ge=0),
    ):
        invoices, total = InvoiceService(db).list_invoices(
            document_type,
            party_id=party_id,
            payment_status=payment_status,
            financial_year=financial_year,
            date_from=date_from,
            date_to=date_to,
            search=search,
            limit=limit,
            offset=offset,
        )
        return InvoiceList(invoices=invoices, total=total, limit=limit, offset=offset)

    @router.post("/record-payment", response_model=InvoiceOut)
    async def record_payment(payment_data: PaymentCreate, db: db_dependency, auth_context: auth_dependency):
        """Record a payment and return the invoice with recomputed paid / remaining / status"""
        return PaymentLedger(db).record_payment(document_type, payment_data, auth_context.user_id)

    @router.get("/{invoice_id}", response_model=InvoiceDetail)
    async def get_invoice(invoice_id: UUID, db: db_dependency, auth_context: auth_dependency):
        return InvoiceService(db).get_invoice(document_type, invoice_id)

    @router.put("/{invoice_id}", response_model=InvoiceOut)
    async def update_invoice(
        invoice_id: UUID,
        invoice_data: InvoiceUpdate,
        db: db_dependency,
        auth_context: auth_dependency,
    ):
        return InvoiceService(db).update_invoice(document_type, invoice_id, invoice_data, auth_context.user_id)

    @router.patch("/{invoice_id}/status", response_model=InvoiceOut)
    async def override_payment_status(
        invoice_id: UUID,
        status_data: PaymentStatusUpdate,
        db: db_dependency,
        auth_context: finance_auth_dependency,
    ):
        """Set the payment status by hand. The next payment or update re-derives it."""
        return InvoiceService(db).override_payment_status(document_type, invoice_id, status_data.payment_status)

    @router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_invoice(invoice_id: UUID, db: db_dependency, auth_context: auth_dependency):
        InvoiceService(db).delete_invoice(document_type, invoice_id)

    @router.get("/{invoice_id}/payments", response_model=PaymentList)
    async def list_payments(invoice_id: UUID, db: db_dependency, auth_context: auth_dependency):
        ledger = PaymentLedger(db)
        payments = ledger.list_payments(document_type, invoice_id)
        return PaymentList(payments=payments, total_paid=ledger.total_paid(document_type, invoice_id))

    @router.get("/{invoice_id}/ledger", response_model=PartnerLedger)
    async def get_invoice_party_ledger(
        invoice_id: UUID,
        db: db_dependency,
        auth_context: auth_dependency,
        as_of: Optional[date] = Query(None),
    ):
        """Statement of the party this invoice was issued to (or received from)"""
        return PartnerLedgerView(db).build_ledger_for_invoice(document_type, invoice_id, as_of)

    return router


sales_invoices_router = build_invoice_router(DocumentType.SALES)
purchase_invoices_router = build_invoice_router(DocumentType.PURCHASE)
