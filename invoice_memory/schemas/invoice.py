"""
Extracted invoice models.

The engine consumes invoices that an upstream OCR/LLM step has already
parsed. Models are frozen so the original extraction stays recoverable;
rules work on a separate copy of the fields.
"""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Immutable model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class LineItem(_CamelModel):
    """
    A single invoice line.

    Attributes:
        sku: Stock keeping unit, None when the extractor found none.
        description: Line description as printed.
        quantity: Ordered quantity (``qty`` on the wire).
        unit_price: Price per unit.
    """

    sku: str | None = None
    description: str = ""
    quantity: float = Field(default=0.0, alias="qty")
    unit_price: float = 0.0


class InvoiceFields(_CamelModel):
    """Structured fields of an extracted invoice."""

    invoice_number: str
    invoice_date: str
    service_date: str | None = None
    currency: str | None = None
    po_number: str | None = None
    net_total: float = 0.0
    tax_rate: float = 0.0
    tax_total: float = 0.0
    gross_total: float = 0.0
    line_items: tuple[LineItem, ...] = ()

    def to_working_copy(self) -> dict[str, Any]:
        """
        Build the mutable field dictionary rules write into.

        Keys use the camelCase wire names; line items become plain dicts.
        """
        return self.model_dump(mode="json", by_alias=True)


class ExtractedInvoice(_CamelModel):
    """
    Output of the upstream extraction step.

    Attributes:
        invoice_id: Unique identifier of this extraction.
        vendor: Vendor name, the memory partition key.
        fields: Structured invoice fields.
        confidence: Extraction confidence between 0 and 1.
        raw_text: Unstructured source text used by pattern rules.
    """

    invoice_id: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    fields: InvoiceFields
    confidence: Annotated[float, Field(ge=0.0, le=1.0)]
    raw_text: str = ""
