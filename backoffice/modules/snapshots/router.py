"""
Read and refresh invoice party/product snapshots.
"""
from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from backoffice.dependencies.dbDependecies import db_dependency, auth_dependency
from backoffice.modules.snapshots.models import MasterTable, PartyType
from backoffice.modules.snapshots.schemas import (
    InvoicePartyOut, InvoicePartyList, InvoiceProductOut, InvoiceProductList
)
from backoffice.modules.snapshots.service import PartySnapshotSync, ProductSnapshotSync

parties_router = APIRouter(prefix="/invoice-parties", tags=["Invoice Snapshots"])
products_router = APIRouter(prefix="/invoice-products", tags=["Invoice Snapshots"])


@parties_router.get("", response_model=InvoicePartyList)
async def list_invoice_parties(
    db: db_dependency,
    auth_context: auth_dependency,
    party_type: Optional[PartyType] = Query(None, description="CUSTOMER or SUPPLIER"),
    search: Optional[str] = Query(None, description="Search by party name"),
):
    parties = PartySnapshotSync(db).list_parties(party_type=party_type, search=search)
    return InvoicePartyList(items=parties, total=len(parties))


@parties_router.get("/{party_id}", response_model=InvoicePartyOut)
async def get_invoice_party(party_id: UUID, db: db_dependency, auth_context: auth_dependency):
    return PartySnapshotSync(db).get_party(party_id)


@parties_router.post("/sync/{master_table}/{master_id}", response_model=InvoicePartyOut, status_code=status.HTTP_200_OK)
async def sync_invoice_party(
    master_table: MasterTable,
    master_id: UUID,
    db: db_dependency,
    auth_context: auth_dependency,
):
    """
    Copy a client or supplier master record into its invoice snapshot.

    Calling it again after the master changed refreshes the same snapshot.
    """
    party = PartySnapshotSync(db).sync_master(master_table, master_id)
    db.commit()
    db.refresh(party)
    return party


@products_router.get("", response_model=InvoiceProductList)
async def list_invoice_products(
    db: db_dependency,
    auth_context: auth_dependency,
    search: Optional[str] = Query(None, description="Search by product name"),
):
    products = ProductSnapshotSync(db).list_products(search=search)
    return InvoiceProductList(items=products, total=len(products))


@products_router.get("/{product_id}", response_model=InvoiceProductOut)
async def get_invoice_product(product_id: UUID, db: db_dependency, auth_context: auth_dependency):
    return ProductSnapshotSync(db).get_product(product_id)


@products_router.post("/sync/{product_id}", response_model=InvoiceProductOut)
async def sync_invoice_product(product_id: UUID, db: db_dependency, auth_context: auth_dependency):
    product = ProductSnapshotSync(db).sync_product(product_id)
    db.commit()
    db.refresh(product)
    return product
