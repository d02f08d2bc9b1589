"""
GST arithmetic for invoice lines and headers
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from backoffice.common.validators import UNKNOWN_STATE_CODE
from backoffice.core.config import settings

TWO_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')


def money(value) -> Decimal:
    """Quantize to paise using commercial rounding."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass
class LineCalculation:
    quantity: Decimal
    rate: Decimal
    amount: Decimal
    tax_rate: Decimal
    tax_amount: Decimal


@dataclass
class InvoiceTotals:
    subtotal: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    other_charges: Decimal = ZERO
    round_off: Decimal = ZERO
    lines: List[LineCalculation] = field(default_factory=list)

    @property
    def tax_total(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    @property
    def total_amount(self) -> Decimal:
        return money(self.subtotal + self.tax_total + self.other_charges + self.round_off)


class GSTCalculator:
    """Line amounts, GST and header totals"""

    def __init__(self, company_state_code: Optional[str] = None):
        self.company_state_code = company_state_code or settings.COMPANY_STATE_CODE

    def is_intra_state(self, party_state_code: Optional[str]) -> bool:
        # Unknown party state is billed as local supply
        code = party_state_code or UNKNOWN_STATE_CODE
        return code in (self.company_state_code, UNKNOWN_STATE_CODE)

    def calculate_line(self, quantity: Decimal, rate: Decimal, tax_rate: Decimal) -> LineCalculation:
        amount = money(Decimal(quantity) * Decimal(rate))
        tax_rate = Decimal(tax_rate or 0)
        tax_amount = money(amount * tax_rate / Decimal(100))
        return LineCalculation(
            quantity=Decimal(quantity),
            rate=money(rate),
            amount=amount,
            tax_rate=tax_rate,
            tax_amount=tax_amount
        )

    def split_tax(self, tax_total: Decimal, party_state_code: Optional[str]) -> Tuple[Decimal, Decimal, Decimal]:
        """
        Split a GST amount into (cgst, sgst, igst).

        Intra-state supplies get two halves; SGST takes the odd paisa so the
        parts always add back up to the total.
        """
        tax_total = money(tax_total)
        if self.is_intra_state(party_state_code):
            cgst = (tax_total / 2).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
            return cgst, tax_total - cgst, ZERO
        return ZERO, ZERO, tax_total

    def calculate_invoice_totals(
        self,
        lines: List[LineCalculation],
        party_state_code: Optional[str],
        cgst_amount: Optional[Decimal] = None,
        sgst_amount: Optional[Decimal] = None,
        igst_amount: Optional[Decimal] = None,
        other_charges: Optional[Decimal] = None,
        round_off: Optional[Decimal] = None,
    ) -> InvoiceTotals:
        """
        Header totals from already-calculated lines.

        Explicit cgst/sgst/igst amounts (any of them) replace the per-line
        GST; the missing ones count as zero.
        """
        subtotal = money(sum((line.amount for line in lines), ZERO))
        if any(v is not None for v in (cgst_amount, sgst_amount, igst_amount)):
            cgst, sgst, igst = money(cgst_amount), money(sgst_amount), money(igst_amount)
        else:
            line_tax = sum((line.tax_amount for line in lines), ZERO)
            cgst, sgst, igst = self.split_tax(line_tax, party_state_code)

        return InvoiceTotals(
            subtotal=subtotal,
            cgst_amount=cgst,
            sgst_amount=sgst,
            igst_amount=igst,
            other_charges=money(other_charges),
            round_off=money(round_off),
            lines=lines
        )
