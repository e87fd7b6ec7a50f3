"""Invoice arithmetic and document numbering."""

from .calculator import InvoiceLine, InvoiceTotals, compute_invoice_totals, line_subtotal
from .numbering import next_sequence_number

__all__ = [
    "InvoiceLine",
    "InvoiceTotals",
    "compute_invoice_totals",
    "line_subtotal",
    "next_sequence_number",
]
