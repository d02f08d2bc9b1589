from backoffice.database.database import Base
from sqlalchemy import Column, String, Date, Numeric, Text, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from uuid import uuid4
from backoffice.common.mixins import TimestampMixin
import enum


class SalesOrderStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class SalesOrder(Base, TimestampMixin):
    """
    Customer order raised by the sales team. Read-only for the invoicing core:
    sales invoices may reference one to get fulfilment tracking.
    """
    __tablename__ = "sales_orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    order_number = Column(String(50), nullable=False, unique=True, index=True)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=True)
    order_date = Column(Date, nullable=False, default=date.today)
    expected_delivery_date = Column(Date, nullable=True)
    status = Column(Enum(SalesOrderStatus), nullable=False, default=SalesOrderStatus.CONFIRMED)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    delivery_address = Column(Text, nullable=True)

    client = relationship("Client")
    items = relationship("SalesOrderItem", back_populates="sales_order", cascade="all, delete-orphan")


class SalesOrderItem(Base, TimestampMixin):
    __tablename__ = "sales_order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    sales_order_id = Column(Uuid(as_uuid=True), ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("product_master.id"), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Numeric(15, 3), nullable=False)
    unit = Column(String(20), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total_price = Column(Numeric(15, 2), nullable=False)

    sales_order = relationship("SalesOrder", back_populates="items")
    product = relationship("ProductMaster")
