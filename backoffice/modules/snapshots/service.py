"""
Snapshot sync for invoice parties and products.

Invoices never reference master records directly. Before a master record is
used on an invoice it is copied (or refreshed) into invoice_parties /
invoice_products, and the (master table, master id) pair is remembered in
master_snapshot_links so later syncs update the same snapshot.

Both services flush but never commit: the caller owns the transaction.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, not_
from sqlalchemy.orm import Session

from backoffice.common.exceptions import InvalidMasterRecord, ReferenceNotFoundError, SyncFailure
from backoffice.common.units import normalize_unit
from backoffice.common.validators import UNKNOWN_STATE_CODE, get_state_code, state_code_from_gstin
from backoffice.modules.masters.models import Client, Supplier, ProductMaster
from backoffice.modules.snapshots.mappers import party_from_client, party_from_supplier, product_from_master
from backoffice.modules.snapshots.models import (
    InvoiceParty, InvoiceProduct, MasterSnapshotLink, MasterTable, PartyType
)
from backoffice.modules.snapshots.schemas import MasterPartyRecord, MasterProductRecord

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
DEFAULT_PINCODE = "000000"
DEFAULT_CREDIT_DAYS = 30


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _billing_address(street: Optional[str], city: Optional[str], state: Optional[str]) -> str:
    parts = [p for p in (_clean(street), _clean(city), _clean(state)) if p]
    return ", ".join(parts) if parts else NOT_AVAILABLE


def _find_link(db: Session, master_table: Optional[MasterTable], master_id: Optional[UUID]) -> Optional[MasterSnapshotLink]:
    if master_table is None or master_id is None:
        return None
    return db.query(MasterSnapshotLink).filter(
        MasterSnapshotLink.master_table == master_table,
        MasterSnapshotLink.master_id == master_id,
    ).first()


def _linked_elsewhere(db: Session, link_column, snapshot_id, master_table: Optional[MasterTable], master_id: Optional[UUID]):
    """Criterion matching snapshots already linked to some other master record"""
    query = db.query(MasterSnapshotLink.id).filter(link_column == snapshot_id)
    if master_table is not None and master_id is not None:
        query = query.filter(not_(and_(
            MasterSnapshotLink.master_table == master_table,
            MasterSnapshotLink.master_id == master_id,
        )))
    return query.exists()


class PartySnapshotSync:
    """Upserts invoice_parties rows from customer/supplier master records"""

    def __init__(self, db: Session):
        self.db = db

    def sync(self, record: MasterPartyRecord) -> InvoiceParty:
        name = _clean(record.name)
        if not name:
            raise InvalidMasterRecord(
                "Master record has no name",
                errors=[f"{record.party_type.value.lower()} {record.master_id or ''}".strip() + ": name is required"]
            )

        link = _find_link(self.db, record.master_table, record.master_id)
        party = None
        if link is not None and link.party_id is not None:
            party = self.db.get(InvoiceParty, link.party_id)
        if party is None:
            # Legacy rows predate the link table; never adopt another master's snapshot
            party = self.db.query(InvoiceParty).filter(
                InvoiceParty.party_name == name,
                InvoiceParty.party_type == record.party_type,
                ~_linked_elsewhere(self.db, MasterSnapshotLink.party_id, InvoiceParty.id,
                                   record.master_table, record.master_id),
            ).first()

        created = party is None
        if created:
            party = InvoiceParty(party_type=record.party_type)
            self.db.add(party)

        party.party_name = name
        party.billing_address = _billing_address(record.street, record.city, record.state)
        party.city = _clean(record.city) or NOT_AVAILABLE
        party.state = _clean(record.state) or NOT_AVAILABLE
        party.state_code = get_state_code(record.state)
        if party.state_code == UNKNOWN_STATE_CODE:
            party.state_code = state_code_from_gstin(record.gstin) or UNKNOWN_STATE_CODE
        party.pincode = _clean(record.pincode) or DEFAULT_PINCODE
        party.gstin = _clean(record.gstin)
        party.pan = _clean(record.pan)
        party.contact_person = _clean(record.contact_person)
        party.contact_number = _clean(record.contact_number)
        party.email = _clean(record.email)
        party.credit_days = record.credit_days if record.credit_days is not None else DEFAULT_CREDIT_DAYS
        party.is_active = True
        self.db.flush()

        if record.master_table is not None and record.master_id is not None:
            if link is None:
                self.db.add(MasterSnapshotLink(
                    master_table=record.master_table,
                    master_id=record.master_id,
                    party_id=party.id,
                ))
            else:
                link.party_id = party.id
            self.db.flush()

        logger.info(
            f"{'Created' if created else 'Updated'} {record.party_type.value} snapshot "
            f"{party.id} ({name})"
        )
        return party

    def sync_client(self, client_id: UUID) -> InvoiceParty:
        client = self.db.get(Client, client_id)
        if client is None:
            raise ReferenceNotFoundError(f"Client {client_id} not found")
        return self.sync(party_from_client(client))

    def sync_supplier(self, supplier_id: UUID) -> InvoiceParty:
        supplier = self.db.get(Supplier, supplier_id)
        if supplier is None:
            raise ReferenceNotFoundError(f"Supplier {supplier_id} not found")
        return self.sync(party_from_supplier(supplier))

    def sync_master(self, master_table: MasterTable, master_id: UUID) -> InvoiceParty:
        if master_table == MasterTable.CLIENTS:
            return self.sync_client(master_id)
        if master_table == MasterTable.SUPPLIERS:
            return self.sync_supplier(master_id)
        raise SyncFailure(f"{master_table.value} is not a party master table")

    def get_party(self, party_id: UUID) -> InvoiceParty:
        party = self.db.get(InvoiceParty, party_id)
        if party is None:
            raise ReferenceNotFoundError(f"Invoice party {party_id} not found")
        return party

    def find_by_master_id(self, master_id: UUID) -> Optional[InvoiceParty]:
        """Snapshot linked to a client or supplier id, if any."""
        link = self.db.query(MasterSnapshotLink).filter(
            MasterSnapshotLink.master_id == master_id,
            MasterSnapshotLink.party_id.isnot(None),
        ).first()
        if link is None:
            return None
        return self.db.get(InvoiceParty, link.party_id)

    def list_parties(self, party_type: Optional[PartyType] = None, search: Optional[str] = None) -> List[InvoiceParty]:
        query = self.db.query(InvoiceParty).filter(InvoiceParty.is_active == True)
        if party_type is not None:
            query = query.filter(InvoiceParty.party_type == party_type)
        if search:
            query = query.filter(InvoiceParty.party_name.ilike(f"%{search}%"))
        return query.order_by(InvoiceParty.party_name).all()


class ProductSnapshotSync:
    """Upserts invoice_products rows from product master records"""

    def __init__(self, db: Session):
        self.db = db

    def sync(self, record: MasterProductRecord) -> InvoiceProduct:
        name = _clean(record.name)
        if not name:
            raise InvalidMasterRecord(
                "Master record has no name",
                errors=[f"product {record.master_id or ''}".strip() + ": name is required"]
            )

        master_table = record.master_table or MasterTable.PRODUCT_MASTER
        link = _find_link(self.db, master_table, record.master_id)
        product = None
        if link is not None and link.product_id is not None:
            product = self.db.get(InvoiceProduct, link.product_id)
        if product is None:
            product = self.db.query(InvoiceProduct).filter(
                InvoiceProduct.product_name == name,
                ~_linked_elsewhere(self.db, MasterSnapshotLink.product_id, InvoiceProduct.id,
                                   master_table, record.master_id),
            ).first()

        created = product is None
        if created:
            product = InvoiceProduct()
            self.db.add(product)

        product.product_name = name
        product.product_code = _clean(record.product_code)
        product.description = _clean(record.description)
        product.hsn_code = _clean(record.hsn_code)
        product.unit = normalize_unit(record.unit).value
        product.rate = record.rate if record.rate is not None else Decimal("0")
        product.gst_rate = record.gst_rate if record.gst_rate is not None else Decimal("0")
        product.is_active = True
        self.db.flush()

        if record.master_id is not None:
            if link is None:
                self.db.add(MasterSnapshotLink(
                    master_table=master_table,
                    master_id=record.master_id,
                    product_id=product.id,
                ))
            else:
                link.product_id = product.id
            self.db.flush()

        logger.info(f"{'Created' if created else 'Updated'} product snapshot {product.id} ({name})")
        return product

    def sync_product(self, product_id: UUID) -> InvoiceProduct:
        product = self.db.get(ProductMaster, product_id)
        if product is None:
            raise ReferenceNotFoundError(f"Product {product_id} not found")
        return self.sync(product_from_master(product))

    def get_product(self, product_id: UUID) -> InvoiceProduct:
        product = self.db.get(InvoiceProduct, product_id)
        if product is None:
            raise ReferenceNotFoundError(f"Invoice product {product_id} not found")
        return product

    def list_products(self, search: Optional[str] = None) -> List[InvoiceProduct]:
        query = self.db.query(InvoiceProduct).filter(InvoiceProduct.is_active == True)
        if search:
            query = query.filter(InvoiceProduct.product_name.ilike(f"%{search}%"))
        return query.order_by(InvoiceProduct.product_name).all()
