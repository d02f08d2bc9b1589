"""
Sales and purchase invoices

- Creation with party/product snapshot sync, GST totals and fiscal-year numbering
- Header updates with payment recomputation
- Manual payment-status override for finance roles
- Optional link to a sales order for fulfilment tracking

Tables:
- sales_invoices / purchase_invoices: headers
- sales_invoice_items / purchase_invoice_items: line items
- sales_invoice_payments / purchase_invoice_payments: payments (see modules.payments)
"""
