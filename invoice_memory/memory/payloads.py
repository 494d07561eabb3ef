"""
Typed memory payloads.

A memory's ``value`` is stored as JSON. Each key namespace owns one payload
shape, so handlers work with a known dataclass instead of raw dictionaries.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, ClassVar


@dataclass(frozen=True, slots=True)
class LabelMappingPayload:
    """Maps a printed label (e.g. ``Leistungsdatum``) to an invoice field."""

    namespace: ClassVar[str] = "label_mapping"

    target_field: str

    def to_dict(self) -> dict[str, Any]:
        return {"targetField": self.target_field}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LabelMappingPayload:
        return cls(target_field=data.get("targetField", ""))


@dataclass(frozen=True, slots=True)
class TaxBehaviorPayload:
    """How a vendor prints tax, e.g. ``RECOMPUTE_FROM_GROSS``."""

    namespace: ClassVar[str] = "tax_behavior"

    strategy: str

    def to_dict(self) -> dict[str, Any]:
        return {"strategy": self.strategy}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaxBehaviorPayload:
        return cls(strategy=data.get("strategy", ""))


SKONTO_PATTERN = re.compile(r"(\d+)%\s+Skonto.*?(\d+)\s+days?", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class PaymentTermsPayload:
    """
    Early-payment discount terms.

    ``percent`` and ``days`` are None when the reviewer's text could not be
    structured; ``terms`` keeps the raw text in that case.
    """

    namespace: ClassVar[str] = "payment_terms"

    percent: int | None = None
    days: int | None = None
    terms: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.percent is not None and self.days is not None:
            return {"percent": self.percent, "days": self.days}
        return {"terms": self.terms}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaymentTermsPayload:
        return cls(
            percent=data.get("percent"),
            days=data.get("days"),
            terms=data.get("terms"),
        )

    @classmethod
    def from_text(cls, text: str) -> PaymentTermsPayload:
        """Structure ``"2% Skonto 10 days"`` style text where possible."""
        match = SKONTO_PATTERN.search(text)
        if match is None:
            return cls(terms=text)
        return cls(
            percent=int(match.group(1)),
            days=int(match.group(2)),
        )


@dataclass(frozen=True, slots=True)
class SkuMappingPayload:
    """SKU to assign to matching line items."""

    namespace: ClassVar[str] = "sku_mapping"

    sku: str

    def to_dict(self) -> dict[str, Any]:
        return {"sku": self.sku}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkuMappingPayload:
        return cls(sku=data.get("sku", ""))


@dataclass(frozen=True, slots=True)
class CurrencyDefaultPayload:
    """Currency a vendor invoices in when none is printed."""

    namespace: ClassVar[str] = "currency_default"

    currency: str

    def to_dict(self) -> dict[str, Any]:
        return {"currency": self.currency}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CurrencyDefaultPayload:
        return cls(currency=data.get("currency", ""))


@dataclass(frozen=True, slots=True)
class RawPayload:
    """Fallback for keys without a registered payload type."""

    namespace: ClassVar[str] = ""

    data: Any = field(default=None)

    def to_dict(self) -> Any:
        return self.data

    @classmethod
    def from_dict(cls, data: Any) -> RawPayload:
        return cls(data=data)


MemoryPayload = (
    LabelMappingPayload
    | TaxBehaviorPayload
    | PaymentTermsPayload
    | SkuMappingPayload
    | CurrencyDefaultPayload
    | RawPayload
)

PAYLOAD_TYPES: dict[str, type] = {
    payload_type.namespace: payload_type
    for payload_type in (
        LabelMappingPayload,
        TaxBehaviorPayload,
        PaymentTermsPayload,
        SkuMappingPayload,
        CurrencyDefaultPayload,
    )
}


def key_namespace(key: str) -> str:
    """``"sku_mapping:freight"`` -> ``"sku_mapping"``."""
    return key.split(":", 1)[0]


def decode_payload(key: str, value: Any) -> MemoryPayload:
    """Decode a stored value into the payload type owned by the key's namespace."""
    payload_type = PAYLOAD_TYPES.get(key_namespace(key))
    if payload_type is None or not isinstance(value, dict):
        return RawPayload.from_dict(value)
    return payload_type.from_dict(value)


def encode_payload(payload: MemoryPayload | dict[str, Any] | Any) -> Any:
    """Turn a payload (or an already plain value) into a JSON-compatible value."""
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    return payload
