from pydantic import BaseModel, Field


class NextInvoiceNumber(BaseModel):
    invoice_number: str = Field(..., alias="invoiceNumber")
    financial_year: str = Field(..., alias="financialYear")

    class Config:
        populate_by_name = True
