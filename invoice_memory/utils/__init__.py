"""
Utility modules for the invoice memory engine.
"""

from invoice_memory.utils.date_utils import (
    DATE_FORMATS,
    DOTTED_DATE_FORMAT,
    parse_date,
    to_iso_date,
    utc_now_iso,
)


__all__ = [
    "DATE_FORMATS",
    "DOTTED_DATE_FORMAT",
    "parse_date",
    "to_iso_date",
    "utc_now_iso",
]
