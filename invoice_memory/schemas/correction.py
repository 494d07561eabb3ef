"""
Human correction models.

A reviewer's correction is consumed by the learning handlers to create or
reinforce vendor memories. The record itself is never persisted.
"""

from typing import Any

from pydantic import Field

from invoice_memory.schemas.invoice import _CamelModel


class FieldCorrection(_CamelModel):
    """
    One corrected field.

    Attributes:
        field: Field path as reported by the review UI, e.g. ``serviceDate``
            or ``lineItems0.sku``.
        from_value: Value before correction (``from`` on the wire).
        to_value: Value after correction (``to`` on the wire).
        reason: Free-text reviewer justification.
    """

    field: str
    from_value: Any = Field(default=None, alias="from")
    to_value: Any = Field(default=None, alias="to")
    reason: str = ""


class HumanCorrection(_CamelModel):
    """A reviewer's corrections for a single invoice."""

    invoice_id: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    corrections: tuple[FieldCorrection, ...] = ()
    final_decision: str = ""

    def find(self, *field_names: str) -> FieldCorrection | None:
        """Return the first correction whose field is one of ``field_names``."""
        for correction in self.corrections:
            if correction.field in field_names:
                return correction
        return None
