"""
Boundary mapping from master records to the canonical snapshot inputs.

Master tables (and loose JSON payloads) name the same field differently.
All of that is resolved here so the sync services only ever see
MasterPartyRecord / MasterProductRecord.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from backoffice.modules.masters.models import Client, Supplier, ProductMaster
from backoffice.modules.snapshots.schemas import (
    MasterPartyRecord, MasterProductRecord, MasterTable, PartyType
)


def _first(data: Mapping[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def party_from_client(client: Client) -> MasterPartyRecord:
    return MasterPartyRecord(
        master_table=MasterTable.CLIENTS,
        master_id=client.id,
        party_type=PartyType.CUSTOMER,
        name=client.name,
        gstin=client.gst_number,
        pan=client.pan_number,
        street=client.address,
        city=client.city,
        state=client.state,
        pincode=client.pincode,
        contact_person=client.contact_person,
        contact_number=client.mobile_number,
        email=client.email,
        credit_days=client.payment_terms,
    )


def party_from_supplier(supplier: Supplier) -> MasterPartyRecord:
    return MasterPartyRecord(
        master_table=MasterTable.SUPPLIERS,
        master_id=supplier.id,
        party_type=PartyType.SUPPLIER,
        name=supplier.supplier_name,
        gstin=supplier.gstin,
        pan=supplier.pan,
        street=supplier.registered_address_street,
        city=supplier.registered_address_city,
        state=supplier.registered_address_state,
        pincode=supplier.registered_address_postal_code,
        contact_person=supplier.contact_person_name,
        contact_number=supplier.contact_phone,
        email=supplier.contact_email,
        credit_days=supplier.payment_terms,
    )


def product_from_master(product: ProductMaster) -> MasterProductRecord:
    return MasterProductRecord(
        master_table=MasterTable.PRODUCT_MASTER,
        master_id=product.id,
        name=product.name,
        product_code=product.product_code,
        description=product.description,
        hsn_code=product.hsn_code,
        unit=product.unit,
        rate=product.rate,
        gst_rate=product.gst_rate,
    )


def party_from_mapping(data: Mapping[str, Any], party_type: PartyType) -> MasterPartyRecord:
    """Map a loose dict (snake_case or camelCase, client or supplier naming)."""
    credit_days = _first(data, "creditDays", "credit_days", "paymentTerms", "payment_terms")
    return MasterPartyRecord(
        master_table=_first(data, "masterTable", "master_table"),
        master_id=_first(data, "masterId", "master_id", "id"),
        party_type=party_type,
        name=_first(data, "partyName", "party_name", "supplierName", "supplier_name", "name"),
        gstin=_first(data, "gstin", "gstNumber", "gst_number", "taxId", "tax_id"),
        pan=_first(data, "pan", "panNumber", "pan_number"),
        street=_first(data, "registeredAddressStreet", "registered_address_street", "address", "street"),
        city=_first(data, "registeredAddressCity", "registered_address_city", "city"),
        state=_first(data, "registeredAddressState", "registered_address_state", "state"),
        pincode=_first(data, "registeredAddressPostalCode", "registered_address_postal_code", "pincode"),
        contact_person=_first(data, "contactPersonName", "contact_person_name", "contactPerson", "contact_person"),
        contact_number=_first(data, "contactPhone", "contact_phone", "contactPersonMobile", "mobileNumber", "mobile_number"),
        email=_first(data, "contactEmail", "contact_email", "contactPersonEmail", "email"),
        credit_days=int(credit_days) if credit_days is not None else None,
    )


def product_from_mapping(data: Mapping[str, Any]) -> MasterProductRecord:
    return MasterProductRecord(
        master_table=_first(data, "masterTable", "master_table") or MasterTable.PRODUCT_MASTER,
        master_id=_first(data, "masterId", "master_id", "id"),
        name=_first(data, "productName", "product_name", "name"),
        product_code=_first(data, "productCode", "product_code", "code"),
        description=_first(data, "description"),
        hsn_code=_first(data, "hsnCode", "hsn_code", "hsnSacCode", "hsn_sac_code"),
        unit=_first(data, "unitOfMeasurement", "unit_of_measurement", "unit"),
        rate=_decimal(_first(data, "ratePerUnit", "rate_per_unit", "rate", "unitPrice", "unit_price")),
        gst_rate=_decimal(_first(data, "gstRate", "gst_rate", "taxRate", "tax_rate")),
    )
