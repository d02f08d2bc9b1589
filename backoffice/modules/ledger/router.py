from fastapi import APIRouter, Query
from typing import Optional
from uuid import UUID
from datetime import date

from backoffice.dependencies.dbDependecies import db_dependency, auth_dependency
from backoffice.modules.ledger.schemas import PartnerLedger
from backoffice.modules.ledger.service import PartnerLedgerView

ledger_router = APIRouter(prefix="/ledgers", tags=["Ledgers"])


@ledger_router.get("/{party_id}", response_model=PartnerLedger)
async def get_partner_ledger(
    party_id: UUID,
    db: db_dependency,
    auth_context: auth_dependency,
    as_of: Optional[date] = Query(None, description="Date used for overdue calculation (default: today)"),
):
    """
    Statement for a customer or supplier.

    - **party_id**: invoice party id or the id of a client/supplier that has been invoiced
    - invoices are credits, payments debits; `balance` is the running outstanding amount
    """
    return PartnerLedgerView(db).build_ledger(party_id, as_of)
