"""
Input schemas consumed by the decision engine.
"""

from invoice_memory.schemas.correction import FieldCorrection, HumanCorrection
from invoice_memory.schemas.invoice import ExtractedInvoice, InvoiceFields, LineItem


__all__ = [
    "ExtractedInvoice",
    "InvoiceFields",
    "LineItem",
    "FieldCorrection",
    "HumanCorrection",
]
