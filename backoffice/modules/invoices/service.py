"""
Business logic for sales and purchase invoices

- Creation: validation, party/product snapshot sync, GST totals, numbering
- Header updates with payment recomputation
- Manual payment-status override
- Listing, detail and deletion

One InvoiceService handles both document types through the registry in
invoices.models; everything a creation touches (snapshots, counter, header,
items) is committed or rolled back together.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backoffice.common.exceptions import (
    BackofficeError, DuplicateInvoiceNumberError, ReferenceNotFoundError, ValidationError
)
from backoffice.common.units import normalize_unit
from backoffice.modules.invoices.calculator import GSTCalculator, LineCalculation, ZERO, money
from backoffice.modules.invoices.models import DocumentType, PaymentStatus, models_for
from backoffice.modules.invoices.schemas import InvoiceCreate, InvoiceItemCreate, InvoiceUpdate
from backoffice.modules.masters.models import Client, Supplier, ProductMaster
from backoffice.modules.numbering.service import (
    InvoiceNumberAllocator, fiscal_year_for, fiscal_year_variants, normalize_fiscal_year
)
from backoffice.modules.orders.models import SalesOrder
from backoffice.modules.payments.service import PaymentLedger
from backoffice.modules.snapshots.mappers import party_from_client, party_from_supplier, product_from_master
from backoffice.modules.snapshots.models import InvoiceParty, InvoiceProduct, MasterSnapshotLink
from backoffice.modules.snapshots.service import DEFAULT_CREDIT_DAYS, PartySnapshotSync, ProductSnapshotSync

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ("cgst_amount", "sgst_amount", "igst_amount", "other_charges", "round_off")
HEADER_FIELDS = (
    "invoice_date", "due_date", "invoice_status", "place_of_supply", "notes",
    "supplier_invoice_number", "supplier_invoice_date",
)


class InvoiceService:
    """Invoice lifecycle for both document types"""

    def __init__(self, db: Session):
        self.db = db
        self.parties = PartySnapshotSync(db)
        self.products = ProductSnapshotSync(db)
        self.numbers = InvoiceNumberAllocator(db)
        self.payments = PaymentLedger(db)
        self.calculator = GSTCalculator()

    # ===== Validation and resolution =====

    def validate_invoice_data(self, document_type: DocumentType, data: InvoiceCreate) -> None:
        """Collect every structural problem and raise them together."""
        errors = []
        if not data.items:
            errors.append("items: at least one line item is required")
        for index, item in enumerate(data.items):
            if item.quantity is None or item.quantity <= 0:
                errors.append(f"items[{index}].quantity: must be greater than zero")
            if item.rate is not None and item.rate < 0:
                errors.append(f"items[{index}].rate: must not be negative")
            if item.product_id is None:
                if not (item.description or "").strip():
                    errors.append(f"items[{index}].description: required for lines without a product")
                if item.rate is None:
                    errors.append(f"items[{index}].rate: required for lines without a product")
        if document_type == DocumentType.PURCHASE and (data.sales_order_id or data.sales_order_number):
            errors.append("sales_order_number: only sales invoices can reference a sales order")
        if data.financial_year:
            try:
                normalize_fiscal_year(data.financial_year)
            except ValidationError as e:
                errors.extend(e.errors)
        if errors:
            raise ValidationError("Invalid invoice data", errors=errors)

    def resolve_party(self, document_type: DocumentType, party_id: UUID) -> InvoiceParty:
        """
        Master client (sales) / supplier (purchase) ids are synced into a
        snapshot first; otherwise the id must be a snapshot of the right type.
        """
        expected_type = models_for(document_type).party_type
        if document_type == DocumentType.SALES:
            client = self.db.get(Client, party_id)
            if client is not None:
                return self.parties.sync(party_from_client(client))
        else:
            supplier = self.db.get(Supplier, party_id)
            if supplier is not None:
                return self.parties.sync(party_from_supplier(supplier))

        party = self.db.get(InvoiceParty, party_id)
        if party is None or party.party_type != expected_type:
            raise ReferenceNotFoundError(
                f"{expected_type.value.title()} {party_id} not found",
                errors=["party_id: no matching master record or invoice party"],
                status_code=400
            )
        return party

    def resolve_product(self, index: int, product_id: UUID) -> Tuple[InvoiceProduct, Optional[UUID]]:
        """Snapshot for a line plus the master product id it came from, if known."""
        master = self.db.get(ProductMaster, product_id)
        if master is not None:
            return self.products.sync(product_from_master(master)), master.id

        snapshot = self.db.get(InvoiceProduct, product_id)
        if snapshot is None:
            raise ReferenceNotFoundError(
                f"Product {product_id} not found",
                errors=[f"items[{index}].product_id: no matching product"],
                status_code=400
            )
        link = self.db.query(MasterSnapshotLink).filter(MasterSnapshotLink.product_id == snapshot.id).first()
        return snapshot, link.master_id if link else None

    def resolve_sales_order(self, data: InvoiceCreate) -> Optional[SalesOrder]:
        if data.sales_order_id is None and not data.sales_order_number:
            return None
        if data.sales_order_id is not None:
            order = self.db.get(SalesOrder, data.sales_order_id)
        else:
            order = self.db.query(SalesOrder).filter(
                SalesOrder.order_number == data.sales_order_number.strip()
            ).first()
        if order is None:
            raise ReferenceNotFoundError(
                f"Sales order {data.sales_order_id or data.sales_order_number} not found",
                errors=["sales_order_number: no matching sales order"],
                status_code=400
            )
        if data.sales_order_number and order.order_number != data.sales_order_number.strip():
            raise ValidationError(
                "Sales order id and number do not match",
                errors=[f"sales_order_number: {data.sales_order_number} is not order {order.id}"]
            )
        return order

    def _build_lines(self, items: List[InvoiceItemCreate]) -> List[dict]:
        lines = []
        for index, item in enumerate(items):
            product, master_product_id = (None, None)
            if item.product_id is not None:
                product, master_product_id = self.resolve_product(index, item.product_id)

            rate = item.rate if item.rate is not None else product.rate
            tax_rate = item.tax_rate if item.tax_rate is not None else (product.gst_rate if product else ZERO)
            calc: LineCalculation = self.calculator.calculate_line(item.quantity, rate, tax_rate)
            lines.append({
                "line_number": index + 1,
                "product_id": product.id if product else None,
                "master_product_id": master_product_id,
                "description": (item.description or "").strip() or (product.product_name if product else None),
                "hsn_code": item.hsn_code or (product.hsn_code if product else None),
                "unit": normalize_unit(item.unit or (product.unit if product else None)).value,
                "quantity": calc.quantity,
                "rate": calc.rate,
                "amount": calc.amount,
                "tax_rate": calc.tax_rate,
                "tax_amount": calc.tax_amount,
                "calculation": calc,
            })
        return lines

    def _ensure_number_free(self, document_type: DocumentType, fiscal_year: str, invoice_number: str,
                            exclude_id: Optional[UUID] = None) -> None:
        invoice_model = models_for(document_type).invoice
        query = self.db.query(invoice_model.id).filter(
            invoice_model.invoice_number == invoice_number,
            invoice_model.financial_year.in_(fiscal_year_variants(fiscal_year)),
        )
        if exclude_id is not None:
            query = query.filter(invoice_model.id != exclude_id)
        if query.first() is not None:
            raise DuplicateInvoiceNumberError(
                f"Invoice number {invoice_number} already exists for FY {fiscal_year}",
                errors=["invoice_number: already in use"]
            )

    # ===== Create =====

    def create_invoice(self, document_type: DocumentType, invoice_data: InvoiceCreate, user_id: UUID):
        """Create an invoice with its line items; returns the committed header."""
        document_type = DocumentType(document_type)
        models = models_for(document_type)
        self.validate_invoice_data(document_type, invoice_data)

        try:
            party = self.resolve_party(document_type, invoice_data.party_id)
            sales_order = self.resolve_sales_order(invoice_data) if document_type == DocumentType.SALES else None
            fiscal_year = (
                normalize_fiscal_year(invoice_data.financial_year)
                if invoice_data.financial_year else fiscal_year_for(invoice_data.invoice_date)
            )

            lines = self._build_lines(invoice_data.items)
            totals = self.calculator.calculate_invoice_totals(
                [line.pop("calculation") for line in lines],
                party.state_code,
                cgst_amount=invoice_data.cgst_amount,
                sgst_amount=invoice_data.sgst_amount,
                igst_amount=invoice_data.igst_amount,
                other_charges=invoice_data.other_charges,
                round_off=invoice_data.round_off,
            )
            if totals.total_amount <= 0:
                raise ValidationError(
                    "Invoice total must be greater than zero",
                    errors=[f"total_amount: computed {totals.total_amount}"]
                )

            credit_days = party.credit_days if party.credit_days is not None else DEFAULT_CREDIT_DAYS
            header = {
                "financial_year": fiscal_year,
                "invoice_date": invoice_data.invoice_date,
                "due_date": invoice_data.due_date or invoice_data.invoice_date + timedelta(days=credit_days),
                "invoice_status": invoice_data.invoice_status,
                "payment_status": PaymentStatus.PENDING,
                "party_id": party.id,
                "party_name": party.party_name,
                "party_gstin": party.gstin,
                "party_state_code": party.state_code,
                "place_of_supply": invoice_data.place_of_supply or party.state,
                "subtotal": totals.subtotal,
                "cgst_amount": totals.cgst_amount,
                "sgst_amount": totals.sgst_amount,
                "igst_amount": totals.igst_amount,
                "other_charges": totals.other_charges,
                "round_off": totals.round_off,
                "total_amount": totals.total_amount,
                "paid_amount": ZERO,
                "remaining_balance": totals.total_amount,
                "notes": invoice_data.notes,
                "created_by": user_id,
            }
            if document_type == DocumentType.SALES:
                header["sales_order_id"] = sales_order.id if sales_order else None
                header["sales_order_number"] = sales_order.order_number if sales_order else None
            else:
                header["supplier_invoice_number"] = invoice_data.supplier_invoice_number
                header["supplier_invoice_date"] = invoice_data.supplier_invoice_date

            manual_number = (invoice_data.invoice_number or "").strip() or None
            invoice = self._insert_invoice(document_type, models, header, lines, manual_number)

            self.db.commit()
            self.db.refresh(invoice)
            logger.info(
                f"Created {document_type.value} invoice {invoice.invoice_number} for {party.party_name}: "
                f"total={invoice.total_amount}"
            )
            return invoice

        except BackofficeError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating {document_type.value} invoice: {e}")
            raise BackofficeError("Error creating invoice") from e

    def _insert_invoice(self, document_type: DocumentType, models, header: dict, lines: List[dict],
                        manual_number: Optional[str]):
        fiscal_year = header["financial_year"]
        if manual_number:
            self._ensure_number_free(document_type, fiscal_year, manual_number)
            self.numbers.observe_number(document_type, fiscal_year, manual_number)

        # An auto-allocated number that collides gets one retry with a fresh number
        attempts = 1 if manual_number else 2
        for attempt in range(attempts):
            invoice_number = manual_number or self.numbers.next_number(document_type, fiscal_year)
            try:
                with self.db.begin_nested():
                    invoice = models.invoice(invoice_number=invoice_number, **header)
                    invoice.items = [models.item(**line) for line in lines]
                    self.db.add(invoice)
                return invoice
            except IntegrityError:
                if attempt + 1 >= attempts:
                    raise DuplicateInvoiceNumberError(
                        f"Invoice number {invoice_number} already exists for FY {fiscal_year}",
                        errors=["invoice_number: already in use"]
                    )
                logger.warning(f"Invoice number {invoice_number} was taken concurrently, allocating another")

    # ===== Read =====

    def get_invoice(self, document_type: DocumentType, invoice_id: UUID):
        invoice_model = models_for(document_type).invoice
        invoice = self.db.get(invoice_model, invoice_id)
        if invoice is None:
            raise ReferenceNotFoundError(f"{DocumentType(document_type).value.title()} invoice {invoice_id} not found")
        return invoice

    def list_invoices(
        self,
        document_type: DocumentType,
        party_id: Optional[UUID] = None,
        payment_status: Optional[PaymentStatus] = None,
        financial_year: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List, int]:
        invoice_model = models_for(document_type).invoice
        query = self.db.query(invoice_model)

        if party_id:
            query = query.filter(invoice_model.party_id == party_id)
        if payment_status:
            query = query.filter(invoice_model.payment_status == payment_status)
        if financial_year:
            query = query.filter(invoice_model.financial_year.in_(fiscal_year_variants(financial_year)))
        if date_from:
            query = query.filter(invoice_model.invoice_date >= date_from)
        if date_to:
            query = query.filter(invoice_model.invoice_date <= date_to)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                invoice_model.invoice_number.ilike(pattern) | invoice_model.party_name.ilike(pattern)
            )

        total = query.count()
        invoices = query.order_by(
            invoice_model.invoice_date.desc(), invoice_model.created_at.desc()
        ).offset(offset).limit(limit).all()
        return invoices, total

    # ===== Update =====

    def update_invoice(self, document_type: DocumentType, invoice_id: UUID, invoice_data: InvoiceUpdate, user_id: UUID):
        """
        Partial header update. Totals are recomputed when an amount field
        changes; paid / remaining / status are always re-derived from the
        payment rows.
        """
        document_type = DocumentType(document_type)
        invoice_model = models_for(document_type).invoice
        update_data = invoice_data.model_dump(exclude_unset=True)

        try:
            invoice = self.db.query(invoice_model).filter(invoice_model.id == invoice_id).with_for_update().first()
            if invoice is None:
                raise ReferenceNotFoundError(f"{document_type.value.title()} invoice {invoice_id} not found")

            new_date = update_data.get("invoice_date")
            if new_date is not None and fiscal_year_for(new_date) != normalize_fiscal_year(invoice.financial_year):
                # The number was allocated in the stored year's sequence
                raise ValidationError(
                    "Invoice date must stay within the invoice's financial year",
                    errors=[f"invoice_date: {new_date} is outside FY {invoice.financial_year}"]
                )

            for field in HEADER_FIELDS:
                if field in update_data and hasattr(invoice, field):
                    if update_data[field] is None and field in ("invoice_date", "invoice_status"):
                        continue
                    setattr(invoice, field, update_data[field])

            if any(field in update_data for field in AMOUNT_FIELDS):
                for field in AMOUNT_FIELDS:
                    if update_data.get(field) is not None:
                        setattr(invoice, field, money(update_data[field]))
                invoice.total_amount = money(
                    invoice.subtotal + invoice.cgst_amount + invoice.sgst_amount + invoice.igst_amount
                    + invoice.other_charges + invoice.round_off
                )
                if invoice.total_amount <= 0:
                    raise ValidationError(
                        "Invoice total must be greater than zero",
                        errors=[f"total_amount: computed {invoice.total_amount}"]
                    )

            self.payments.recompute(document_type, invoice)
            self.db.commit()
            self.db.refresh(invoice)
            logger.info(f"Updated {document_type.value} invoice {invoice.invoice_number} by {user_id}")
            return invoice

        except BackofficeError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating invoice {invoice_id}: {e}")
            raise BackofficeError("Error updating invoice") from e

    def override_payment_status(self, document_type: DocumentType, invoice_id: UUID, payment_status: PaymentStatus):
        """Store a payment status verbatim. The next payment or update re-derives it."""
        invoice = self.get_invoice(document_type, invoice_id)
        previous = invoice.payment_status
        invoice.payment_status = PaymentStatus(payment_status)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(
            f"Payment status of {invoice.invoice_number} overridden: {previous.value} -> {invoice.payment_status.value}"
        )
        return invoice

    # ===== Delete =====

    def delete_invoice(self, document_type: DocumentType, invoice_id: UUID) -> None:
        """Delete an invoice together with its items and payments."""
        invoice = self.get_invoice(document_type, invoice_id)
        number = invoice.invoice_number
        try:
            self.db.delete(invoice)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting invoice {invoice_id}: {e}")
            raise BackofficeError("Error deleting invoice") from e
        logger.info(f"Deleted {DocumentType(document_type).value} invoice {number}")
