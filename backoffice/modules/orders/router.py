from fastapi import APIRouter, Query

from backoffice.dependencies.dbDependecies import db_dependency, auth_dependency
from backoffice.modules.orders.schemas import FulfillmentSummary, PendingOrdersList
from backoffice.modules.orders.service import OrderFulfillmentReconciler

orders_router = APIRouter(prefix="/pending-orders", tags=["Sales Order Fulfilment"])


@orders_router.get("", response_model=PendingOrdersList)
async def list_pending_orders(
    db: db_dependency,
    auth_context: auth_dependency,
    only_pending: bool = Query(False, description="Hide cancelled and fully invoiced orders"),
):
    orders = OrderFulfillmentReconciler(db).pending_orders(only_pending=only_pending)
    return PendingOrdersList(orders=orders, total=len(orders))


@orders_router.get("/{order_number:path}", response_model=FulfillmentSummary)
async def get_order_fulfillment(order_number: str, db: db_dependency, auth_context: auth_dependency):
    """Ordered, invoiced and pending quantities of one sales order"""
    return OrderFulfillmentReconciler(db).pending_for_order(order_number)
