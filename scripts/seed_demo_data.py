"""
Seed script: populate a development database with back-office demo data.

What it creates:
- Clients (Telangana and out-of-state) and suppliers with GSTINs.
- Product master rows (bitumen grades, emulsions) with HSN codes and GST rates.
- Sales orders (N, default 20) for random clients.
- Sales invoices against those orders and a few purchase invoices, numbered
  through the regular allocator.
- Payments so invoices end up PENDING / PARTIAL / PAID.
- A bearer token (ACCOUNTANT) for calling the API.

Run from the project root:
    python scripts/seed_demo_data.py --orders 20 --purchases 10

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `backoffice.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import backoffice.main  # noqa: F401  registers every model on Base
from backoffice.database.database import Base, SessionLocal, engine
from backoffice.modules.auth.schemas import UserRole
from backoffice.modules.auth.utils import create_access_token
from backoffice.modules.invoices.models import DocumentType, PaymentMode
from backoffice.modules.invoices.schemas import InvoiceCreate, InvoiceItemCreate
from backoffice.modules.invoices.service import InvoiceService
from backoffice.modules.masters.models import Client, Supplier, ProductMaster
from backoffice.modules.orders.models import SalesOrder, SalesOrderItem
from backoffice.modules.payments.schemas import PaymentCreate
from backoffice.modules.payments.service import PaymentLedger

CLIENTS = [
    ("Deccan Paints Pvt Ltd", "Hyderabad", "Telangana", "36AABCD1234E1Z5"),
    ("Krishna Road Builders", "Warangal", "Telangana", "36AAFCK4321L1Z9"),
    ("Coastal Infra Projects", "Visakhapatnam", "Andhra Pradesh", "37AAACC7788M1Z2"),
    ("Sahyadri Highways Ltd", "Pune", "Maharashtra", "27AADCS5566N1Z4"),
    ("Cauvery Constructions", "Bengaluru", "Karnataka", "29AAECC9900P1Z7"),
]

SUPPLIERS = [
    ("Gujarat Bitumen Co", "Vadodara", "Gujarat", "24AAACG5678H1Z2"),
    ("Hindustan Petro Refinery", "Visakhapatnam", "Andhra Pradesh", "37AAACH1212R1Z1"),
    ("Telangana Drum Works", "Medchal", "Telangana", "36AAGFT3434D1Z6"),
]

PRODUCTS = [
    ("Bitumen VG-30", "27132000", "DRUMS", Decimal("5200.00"), Decimal("18.00")),
    ("Bitumen VG-40", "27132000", "DRUMS", Decimal("5600.00"), Decimal("18.00")),
    ("Emulsion SS-1", "27150090", "KGS", Decimal("48.00"), Decimal("18.00")),
    ("Emulsion RS-1", "27150090", "KGS", Decimal("46.50"), Decimal("18.00")),
    ("CRMB-55", "27132000", "MT", Decimal("61000.00"), Decimal("18.00")),
]


def pick(seq):
    return random.choice(seq)


def create_clients(db):
    clients = []
    for name, city, state, gstin in CLIENTS:
        existing = db.query(Client).filter(Client.name == name).first()
        if existing:
            clients.append(existing)
            continue
        client = Client(
            name=name,
            gst_number=gstin,
            pan_number=gstin[2:12],
            address=f"{random.randint(1, 200)}, Industrial Area",
            city=city,
            state=state,
            pincode=str(random.randint(500001, 599999)),
            contact_person="Accounts",
            mobile_number=f"9{random.randint(100000000, 999999999)}",
            payment_terms=pick([15, 30, 45]),
        )
        db.add(client)
        clients.append(client)
    db.commit()
    return clients


def create_suppliers(db):
    suppliers = []
    for name, city, state, gstin in SUPPLIERS:
        existing = db.query(Supplier).filter(Supplier.supplier_name == name).first()
        if existing:
            suppliers.append(existing)
            continue
        supplier = Supplier(
            supplier_name=name,
            gstin=gstin,
            pan=gstin[2:12],
            registered_address_city=city,
            registered_address_state=state,
            registered_address_postal_code=str(random.randint(380001, 530099)),
            payment_terms=pick([30, 60]),
        )
        db.add(supplier)
        suppliers.append(supplier)
    db.commit()
    return suppliers


def create_products(db):
    products = []
    for name, hsn, unit, rate, gst in PRODUCTS:
        existing = db.query(ProductMaster).filter(ProductMaster.name == name).first()
        if existing:
            products.append(existing)
            continue
        product = ProductMaster(
            product_code=f"P-{uuid4().hex[:6].upper()}",
            name=name,
            hsn_code=hsn,
            unit=unit,
            rate=rate,
            gst_rate=gst,
        )
        db.add(product)
        products.append(product)
    db.commit()
    return products


def create_sales_orders(db, clients, products, orders_count):
    orders = []
    start = date.today() - timedelta(days=120)
    for idx in range(orders_count):
        order = SalesOrder(
            order_number=f"SO/{start.year}/{uuid4().hex[:4].upper()}{idx:03d}",
            client_id=pick(clients).id,
            order_date=start + timedelta(days=random.randint(0, 90)),
        )
        total = Decimal("0")
        for product in random.sample(products, k=random.randint(1, 3)):
            qty = Decimal(random.randint(5, 60))
            line_total = qty * product.rate
            order.items.append(SalesOrderItem(
                product_id=product.id,
                quantity=qty,
                unit=product.unit,
                unit_price=product.rate,
                total_price=line_total,
            ))
            total += line_total
        order.total_amount = total
        db.add(order)
        orders.append(order)
    db.commit()
    return orders


def invoice_orders(db, orders, user_id):
    """One invoice per order for a random share of each line."""
    service = InvoiceService(db)
    invoices = []
    for order in orders:
        items = [
            InvoiceItemCreate(product_id=item.product_id, quantity=(item.quantity * Decimal(random.choice([50, 75, 100])) / 100))
            for item in order.items
        ]
        invoice = service.create_invoice(
            DocumentType.SALES,
            InvoiceCreate(
                party_id=order.client_id,
                invoice_date=order.order_date + timedelta(days=random.randint(1, 20)),
                sales_order_id=order.id,
                items=items,
            ),
            user_id,
        )
        invoices.append(invoice)
    return invoices


def create_purchases(db, suppliers, products, purchases_count, user_id):
    service = InvoiceService(db)
    invoices = []
    for _ in range(purchases_count):
        product = pick(products)
        invoice = service.create_invoice(
            DocumentType.PURCHASE,
            InvoiceCreate(
                party_id=pick(suppliers).id,
                invoice_date=date.today() - timedelta(days=random.randint(0, 100)),
                supplier_invoice_number=f"SUP/{random.randint(1000, 9999)}",
                items=[InvoiceItemCreate(product_id=product.id, quantity=Decimal(random.randint(10, 80)),
                                         rate=(product.rate * Decimal("0.85")).quantize(Decimal("0.01")))],
            ),
            user_id,
        )
        invoices.append(invoice)
    return invoices


def record_payments(db, document_type, invoices, user_id):
    ledger = PaymentLedger(db)
    recorded = 0
    for invoice in invoices:
        share = random.choice([0, 0, 40, 100])
        if not share:
            continue
        amount = (invoice.total_amount * Decimal(share) / 100).quantize(Decimal("0.01"))
        ledger.record_payment(
            document_type,
            PaymentCreate(
                invoice_id=invoice.id,
                amount=amount,
                payment_date=invoice.invoice_date + timedelta(days=random.randint(0, 30)),
                payment_mode=pick([PaymentMode.NEFT, PaymentMode.RTGS, PaymentMode.CHEQUE]),
            ),
            user_id,
        )
        recorded += 1
    return recorded


def main():
    parser = argparse.ArgumentParser(description="Seed back-office demo data")
    parser.add_argument("--orders", type=int, default=20)
    parser.add_argument("--purchases", type=int, default=10)
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    user_id = uuid4()
    db = SessionLocal()
    try:
        print("Creating master data...")
        clients = create_clients(db)
        suppliers = create_suppliers(db)
        products = create_products(db)
        print(f"Clients: {len(clients)}, Suppliers: {len(suppliers)}, Products: {len(products)}")

        print("Creating sales orders...")
        orders = create_sales_orders(db, clients, products, args.orders)
        print(f"Sales orders created: {len(orders)}")

        print("Invoicing sales orders...")
        sales = invoice_orders(db, orders, user_id)
        print(f"Sales invoices created: {len(sales)}")

        print("Creating purchase invoices...")
        purchases = create_purchases(db, suppliers, products, args.purchases, user_id)
        print(f"Purchase invoices created: {len(purchases)}")

        paid = record_payments(db, DocumentType.SALES, sales, user_id)
        paid += record_payments(db, DocumentType.PURCHASE, purchases, user_id)
        print(f"Payments recorded: {paid}")

        print("\nSeed completed.")
        print("Header for API requests:")
        print(f"  Authorization: Bearer {create_access_token(user_id, UserRole.ACCOUNTANT)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
