"""
Sales order fulfilment: ordered vs invoiced quantities.

Always recomputed from the order lines and the sales invoices that reference
the order; nothing is cached on the order itself.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import List

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from backoffice.common.exceptions import ReferenceNotFoundError
from backoffice.modules.invoices.calculator import ZERO, money
from backoffice.modules.invoices.models import SalesInvoice
from backoffice.modules.orders.models import SalesOrder, SalesOrderStatus
from backoffice.modules.orders.schemas import FulfillmentLine, FulfillmentSummary

logger = logging.getLogger(__name__)

QTY_ZERO = Decimal('0.000')


def _pending(ordered: Decimal, invoiced: Decimal) -> Decimal:
    return max(QTY_ZERO, ordered - invoiced)


class OrderFulfillmentReconciler:
    def __init__(self, db: Session):
        self.db = db

    def matched_invoices(self, order: SalesOrder) -> List[SalesInvoice]:
        """Invoices linked by FK; legacy rows without the FK are matched on the number."""
        return self.db.query(SalesInvoice).filter(
            or_(
                SalesInvoice.sales_order_id == order.id,
                and_(
                    SalesInvoice.sales_order_id.is_(None),
                    SalesInvoice.sales_order_number == order.order_number,
                ),
            )
        ).order_by(SalesInvoice.invoice_date, SalesInvoice.invoice_number).all()

    def summarize(self, order: SalesOrder) -> FulfillmentSummary:
        invoices = self.matched_invoices(order)

        by_product = OrderedDict()
        ordered_qty = QTY_ZERO
        ordered_amount = ZERO
        for item in order.items:
            line = by_product.setdefault(item.product_id, {
                "description": item.description or (item.product.name if item.product else None),
                "unit": item.unit,
                "ordered": QTY_ZERO,
                "invoiced": QTY_ZERO,
            })
            line["ordered"] += Decimal(item.quantity)
            ordered_qty += Decimal(item.quantity)
            ordered_amount += money(item.total_price)

        invoiced_qty = QTY_ZERO
        invoiced_amount = ZERO
        for invoice in invoices:
            invoiced_amount += money(invoice.total_amount)
            for item in invoice.items:
                invoiced_qty += Decimal(item.quantity)
                if item.master_product_id in by_product:
                    by_product[item.master_product_id]["invoiced"] += Decimal(item.quantity)

        lines = [
            FulfillmentLine(
                product_id=product_id,
                description=line["description"],
                unit=line["unit"],
                ordered_qty=line["ordered"],
                invoiced_qty=line["invoiced"],
                pending_qty=_pending(line["ordered"], line["invoiced"]),
            )
            for product_id, line in by_product.items()
        ]

        return FulfillmentSummary(
            sales_order_id=order.id,
            order_number=order.order_number,
            order_date=order.order_date,
            status=order.status,
            client_name=order.client.name if order.client else None,
            ordered_qty=ordered_qty,
            ordered_amount=ordered_amount,
            invoiced_qty=invoiced_qty,
            invoiced_amount=invoiced_amount,
            pending_qty=_pending(ordered_qty, invoiced_qty),
            invoice_count=len(invoices),
            invoice_numbers=[invoice.invoice_number for invoice in invoices],
            lines=lines,
        )

    def pending_for_order(self, order_number: str) -> FulfillmentSummary:
        order = self.db.query(SalesOrder).filter(SalesOrder.order_number == order_number).first()
        if order is None:
            raise ReferenceNotFoundError(f"Sales order {order_number} not found")
        return self.summarize(order)

    def pending_orders(self, only_pending: bool = False) -> List[FulfillmentSummary]:
        """
        Fulfilment summary of every sales order, newest first.

        only_pending drops cancelled orders and orders with nothing left to invoice.
        """
        orders = self.db.query(SalesOrder).order_by(
            SalesOrder.order_date.desc(), SalesOrder.order_number.desc()
        ).all()
        summaries = []
        for order in orders:
            if only_pending and order.status == SalesOrderStatus.CANCELLED:
                continue
            summary = self.summarize(order)
            if only_pending and summary.pending_qty <= 0:
                continue
            summaries.append(summary)
        logger.debug(f"Reconciled {len(orders)} sales orders, returning {len(summaries)}")
        return summaries
