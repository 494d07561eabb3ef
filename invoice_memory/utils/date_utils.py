"""
Date utility functions for invoice processing.

Provides parsing and canonicalisation of the date formats that appear
on European supplier invoices.
"""

import re
from datetime import UTC, date, datetime


# Common invoice date patterns with their strptime formats
DATE_FORMATS: list[tuple[str, str]] = [
    (r"^\d{4}-\d{2}-\d{2}$", "%Y-%m-%d"),  # YYYY-MM-DD
    (r"^\d{1,2}\.\d{1,2}\.\d{4}$", "%d.%m.%Y"),  # DD.MM.YYYY
    (r"^\d{1,2}\.\d{1,2}\.\d{2}$", "%d.%m.%y"),  # DD.MM.YY
    (r"^\d{4}/\d{2}/\d{2}$", "%Y/%m/%d"),  # YYYY/MM/DD
]

# German-style day-first dates inside free text
DOTTED_DATE_FORMAT: list[tuple[str, str]] = [
    (r"^\d{1,2}\.\d{1,2}\.\d{4}$", "%d.%m.%Y"),
]


def parse_date(
    date_string: str | None,
    formats: list[tuple[str, str]] | None = None,
    default: date | None = None,
) -> date | None:
    """
    Parse a date string into a date object.

    Args:
        date_string: String representation of date.
        formats: Optional list of (pattern, strptime_format) tuples.
        default: Default value if parsing fails.

    Returns:
        Parsed date object or default value.

    Example:
        parse_date("2024-01-15") -> date(2024, 1, 15)
        parse_date("15.01.2024") -> date(2024, 1, 15)
    """
    if not date_string:
        return default

    date_string = date_string.strip()

    if formats is None:
        formats = DATE_FORMATS

    for pattern, date_format in formats:
        if re.match(pattern, date_string):
            try:
                return datetime.strptime(date_string, date_format).date()
            except ValueError:
                continue

    return default


def to_iso_date(date_string: str | None, formats: list[tuple[str, str]] | None = None) -> str | None:
    """
    Canonicalise a date string to ``YYYY-MM-DD``.

    Returns None when the string cannot be parsed.
    """
    parsed = parse_date(date_string, formats=formats)
    if parsed is None:
        return None
    return parsed.isoformat()


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()
