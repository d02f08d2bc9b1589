from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date
from backoffice.modules.orders.models import SalesOrderStatus


class FulfillmentLine(BaseModel):
    product_id: UUID
    description: Optional[str] = None
    unit: str
    ordered_qty: Decimal
    invoiced_qty: Decimal
    pending_qty: Decimal


class FulfillmentSummary(BaseModel):
    sales_order_id: UUID
    order_number: str
    order_date: date
    status: SalesOrderStatus
    client_name: Optional[str] = None
    ordered_qty: Decimal
    ordered_amount: Decimal
    invoiced_qty: Decimal
    invoiced_amount: Decimal
    pending_qty: Decimal
    invoice_count: int
    invoice_numbers: List[str] = []
    lines: List[FulfillmentLine] = []


class PendingOrdersList(BaseModel):
    orders: List[FulfillmentSummary]
    total: int
