"""
Tests for invoice party/product snapshots

- Mapping of the different master shapes onto canonical records
- Upsert identity (link table, legacy name match, rename in master)
- Defaults for missing address fields
- Sync endpoints
"""
import pytest
from decimal import Decimal
from uuid import uuid4

from backoffice.common.exceptions import InvalidMasterRecord, ReferenceNotFoundError
from backoffice.modules.snapshots.mappers import (
    party_from_client, party_from_supplier, party_from_mapping, product_from_mapping
)
from backoffice.modules.snapshots.models import (
    InvoiceParty, InvoiceProduct, MasterSnapshotLink, MasterTable, PartyType
)
from backoffice.modules.snapshots.schemas import MasterPartyRecord, MasterProductRecord
from backoffice.modules.snapshots.service import PartySnapshotSync, ProductSnapshotSync


# ===== MAPPERS =====

class TestMappers:

    def test_client_mapping(self, make_client):
        client = make_client()
        record = party_from_client(client)
        assert record.party_type == PartyType.CUSTOMER
        assert record.master_table == MasterTable.CLIENTS
        assert record.master_id == client.id
        assert record.name == "Deccan Paints Pvt Ltd"
        assert record.gstin == "36AABCD1234E1Z5"
        assert record.credit_days == 30

    def test_supplier_mapping(self, make_supplier):
        supplier = make_supplier()
        record = party_from_supplier(supplier)
        assert record.party_type == PartyType.SUPPLIER
        assert record.name == "Gujarat Bitumen Co"
        assert record.state == "Gujarat"
        assert record.pincode == "390010"
        assert record.contact_person == "M. Patel"

    def test_loose_mapping_accepts_camel_and_snake_case(self):
        camel = party_from_mapping(
            {"supplierName": "Shree Chemicals", "registeredAddressState": "Maharashtra", "gstNumber": "27AAACS1111A1Z1"},
            PartyType.SUPPLIER,
        )
        snake = party_from_mapping(
            {"supplier_name": "Shree Chemicals", "registered_address_state": "Maharashtra", "gst_number": "27AAACS1111A1Z1"},
            PartyType.SUPPLIER,
        )
        assert camel == snake
        assert camel.name == "Shree Chemicals"

    def test_loose_product_mapping(self):
        record = product_from_mapping({"productName": "Emulsion SS-1", "unitOfMeasurement": "Ltr", "gstRate": "18"})
        assert record.name == "Emulsion SS-1"
        assert record.unit == "Ltr"
        assert record.gst_rate == Decimal("18")
        assert record.master_table == MasterTable.PRODUCT_MASTER


# ===== PARTY SYNC =====

class TestPartySnapshotSync:

    def test_creates_snapshot_and_link(self, db_session, make_client):
        client = make_client()
        party = PartySnapshotSync(db_session).sync_client(client.id)
        db_session.commit()

        assert party.party_type == PartyType.CUSTOMER
        assert party.party_name == client.name
        assert party.state_code == "36"
        assert party.billing_address == "Plot 12, IDA Jeedimetla, Hyderabad, Telangana"
        link = db_session.query(MasterSnapshotLink).one()
        assert link.master_id == client.id
        assert link.party_id == party.id

    def test_resync_updates_instead_of_duplicating(self, db_session, make_client):
        client = make_client()
        sync = PartySnapshotSync(db_session)
        first = sync.sync_client(client.id)

        client.city = "Secunderabad"
        db_session.flush()
        second = sync.sync_client(client.id)

        assert first.id == second.id
        assert second.city == "Secunderabad"
        assert db_session.query(InvoiceParty).count() == 1

    def test_rename_in_master_keeps_identity(self, db_session, make_client):
        client = make_client()
        sync = PartySnapshotSync(db_session)
        first = sync.sync_client(client.id)

        client.name = "Deccan Coatings Pvt Ltd"
        db_session.flush()
        renamed = sync.sync_client(client.id)

        assert renamed.id == first.id
        assert renamed.party_name == "Deccan Coatings Pvt Ltd"
        assert db_session.query(InvoiceParty).count() == 1

    def test_legacy_snapshot_matched_by_name_and_linked(self, db_session, make_client):
        legacy = InvoiceParty(party_name="Deccan Paints Pvt Ltd", party_type=PartyType.CUSTOMER)
        db_session.add(legacy)
        db_session.commit()

        client = make_client()
        party = PartySnapshotSync(db_session).sync_client(client.id)

        assert party.id == legacy.id
        assert db_session.query(MasterSnapshotLink).filter_by(master_id=client.id).one().party_id == legacy.id

    def test_same_name_different_type_is_separate(self, db_session):
        sync = PartySnapshotSync(db_session)
        customer = sync.sync(MasterPartyRecord(party_type=PartyType.CUSTOMER, name="Sai Traders"))
        supplier = sync.sync(MasterPartyRecord(party_type=PartyType.SUPPLIER, name="Sai Traders"))
        assert customer.id != supplier.id

    def test_defaults_for_missing_fields(self, db_session):
        party = PartySnapshotSync(db_session).sync(
            MasterPartyRecord(party_type=PartyType.CUSTOMER, name="Walk-in Customer")
        )
        assert party.billing_address == "N/A"
        assert party.city == "N/A"
        assert party.state == "N/A"
        assert party.pincode == "000000"
        assert party.state_code == "00"
        assert party.credit_days == 30

    def test_state_code_falls_back_to_gstin(self, db_session):
        party = PartySnapshotSync(db_session).sync(
            MasterPartyRecord(party_type=PartyType.SUPPLIER, name="Pune Polymers", gstin="27AAACP2222B1Z3")
        )
        assert party.state == "N/A"
        assert party.state_code == "27"

    def test_blank_name_is_rejected(self, db_session):
        with pytest.raises(InvalidMasterRecord):
            PartySnapshotSync(db_session).sync(MasterPartyRecord(party_type=PartyType.CUSTOMER, name="   "))
        assert db_session.query(InvoiceParty).count() == 0

    def test_unknown_client(self, db_session):
        with pytest.raises(ReferenceNotFoundError):
            PartySnapshotSync(db_session).sync_client(uuid4())

    def test_find_by_master_id(self, db_session, make_supplier):
        supplier = make_supplier()
        sync = PartySnapshotSync(db_session)
        party = sync.sync_supplier(supplier.id)
        assert sync.find_by_master_id(supplier.id).id == party.id
        assert sync.find_by_master_id(uuid4()) is None

    def test_same_name_clients_get_separate_snapshots(self, db_session, make_client):
        hyderabad = make_client(name="Acme Traders")
        vadodara = make_client(name="Acme Traders", gst_number="24AAACA1111A1Z1", city="Vadodara",
                               state="Gujarat", pincode="390010")
        sync = PartySnapshotSync(db_session)

        first = sync.sync_client(hyderabad.id)
        second = sync.sync_client(vadodara.id)
        sync.sync_client(hyderabad.id)

        assert first.id != second.id
        assert db_session.query(InvoiceParty).count() == 2
        assert sync.find_by_master_id(hyderabad.id).state_code == "36"
        assert sync.find_by_master_id(vadodara.id).state_code == "24"

    def test_legacy_name_match_skips_linked_snapshot(self, db_session, make_client):
        linked = PartySnapshotSync(db_session).sync_client(make_client(name="Acme Traders").id)
        legacy = InvoiceParty(party_name="Acme Traders", party_type=PartyType.CUSTOMER)
        db_session.add(legacy)
        db_session.commit()

        party = PartySnapshotSync(db_session).sync_client(make_client(name="Acme Traders").id)

        assert party.id == legacy.id
        assert party.id != linked.id


# ===== PRODUCT SYNC =====

class TestProductSnapshotSync:

    def test_product_units_are_normalised(self, db_session, make_product):
        product = make_product(unit="Drums")
        snapshot = ProductSnapshotSync(db_session).sync_product(product.id)
        assert snapshot.unit == "DRUM"
        assert snapshot.gst_rate == Decimal("18.00")
        assert snapshot.hsn_code == "27132000"

    def test_product_resync_updates_rate(self, db_session, make_product):
        product = make_product()
        sync = ProductSnapshotSync(db_session)
        first = sync.sync_product(product.id)

        product.rate = Decimal("120.00")
        db_session.flush()
        second = sync.sync_product(product.id)

        assert first.id == second.id
        assert second.rate == Decimal("120.00")
        assert db_session.query(InvoiceProduct).count() == 1

    def test_same_name_products_get_separate_snapshots(self, db_session, make_product):
        drums = make_product(name="Bitumen VG-30", unit="DRUMS", rate=Decimal("5200.00"))
        bulk = make_product(name="Bitumen VG-30", unit="MT", rate=Decimal("48000.00"))
        sync = ProductSnapshotSync(db_session)

        first = sync.sync_product(drums.id)
        second = sync.sync_product(bulk.id)
        resynced = sync.sync_product(drums.id)

        assert first.id != second.id
        assert resynced.id == first.id
        assert resynced.rate == Decimal("5200.00")
        assert second.rate == Decimal("48000.00")
        assert db_session.query(InvoiceProduct).count() == 2

    def test_product_without_name_is_rejected(self, db_session):
        with pytest.raises(InvalidMasterRecord):
            ProductSnapshotSync(db_session).sync(MasterProductRecord(master_id=uuid4(), name=""))


# ===== ENDPOINTS =====

class TestSnapshotEndpoints:

    def test_sync_client_endpoint(self, client, auth_headers, make_client):
        master = make_client()
        response = client.post(f"/invoice-parties/sync/clients/{master.id}", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["party_name"] == master.name
        assert body["party_type"] == "CUSTOMER"
        assert body["state_code"] == "36"

        listing = client.get("/invoice-parties", params={"party_type": "CUSTOMER"}, headers=auth_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

    def test_sync_product_endpoint(self, client, auth_headers, make_product):
        product = make_product()
        response = client.post(f"/invoice-products/sync/{product.id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["unit"] == "DRUM"

    def test_sync_unknown_master_returns_404(self, client, auth_headers):
        response = client.post(f"/invoice-parties/sync/suppliers/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "ReferenceNotFound"

    def test_product_master_is_not_a_party_table(self, client, auth_headers, make_product):
        product = make_product()
        response = client.post(f"/invoice-parties/sync/product_master/{product.id}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "SyncFailure"

    def test_requires_token(self, client):
        response = client.get("/invoice-parties")
        assert response.status_code in (401, 403)
