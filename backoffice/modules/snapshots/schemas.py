from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from backoffice.modules.snapshots.models import PartyType, MasterTable


# Canonical shapes every master record is mapped to before it reaches sync logic

class MasterPartyRecord(BaseModel):
    master_table: Optional[MasterTable] = None
    master_id: Optional[UUID] = None
    party_type: PartyType
    name: Optional[str] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    contact_person: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    credit_days: Optional[int] = None


class MasterProductRecord(BaseModel):
    master_table: Optional[MasterTable] = MasterTable.PRODUCT_MASTER
    master_id: Optional[UUID] = None
    name: Optional[str] = None
    product_code: Optional[str] = None
    description: Optional[str] = None
    hsn_code: Optional[str] = None
    unit: Optional[str] = None
    rate: Optional[Decimal] = None
    gst_rate: Optional[Decimal] = None


class InvoicePartyOut(BaseModel):
    id: UUID
    party_name: str
    party_type: PartyType
    billing_address: str
    city: str
    state: str
    state_code: str
    pincode: str
    gstin: Optional[str]
    pan: Optional[str]
    contact_person: Optional[str]
    contact_number: Optional[str]
    email: Optional[str]
    credit_days: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceProductOut(BaseModel):
    id: UUID
    product_name: str
    product_code: Optional[str]
    description: Optional[str]
    hsn_code: Optional[str]
    unit: str
    rate: Decimal
    gst_rate: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoicePartyList(BaseModel):
    items: List[InvoicePartyOut]
    total: int


class InvoiceProductList(BaseModel):
    items: List[InvoiceProductOut]
    total: int
