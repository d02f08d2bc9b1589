from fastapi import APIRouter, Query
from typing import Optional

from backoffice.dependencies.dbDependecies import db_dependency, auth_dependency
from backoffice.modules.invoices.models import DocumentType
from backoffice.modules.numbering.schemas import NextInvoiceNumber
from backoffice.modules.numbering.service import InvoiceNumberAllocator

numbering_router = APIRouter(tags=["Invoice Numbering"])


@numbering_router.get("/next-invoice-number", response_model=NextInvoiceNumber)
async def get_next_invoice_number(
    db: db_dependency,
    auth_context: auth_dependency,
    document_type: DocumentType = Query(..., alias="type", description="SALES or PURCHASE"),
    financial_year: Optional[str] = Query(None, alias="financialYear", description="Defaults to the current fiscal year"),
):
    """Preview the next invoice number without reserving it"""
    return InvoiceNumberAllocator(db).preview_number(document_type, financial_year)
