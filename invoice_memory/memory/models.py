"""
Memory data models.

Dataclasses for learned vendor memories, audit entries and duplicate
matches as they move between the store and the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from invoice_memory.memory.payloads import MemoryPayload, decode_payload, encode_payload
from invoice_memory.utils.date_utils import utc_now_iso


REINFORCEMENT_STEP = 0.1


def clamp_confidence(value: float) -> float:
    """Clamp a confidence value to [0, 1]."""
    return max(0.0, min(1.0, value))


class MemoryType(str, Enum):
    """Why a memory exists."""

    VENDOR = "VENDOR"
    CORRECTION = "CORRECTION"
    RESOLUTION = "RESOLUTION"


class AuditStep(str, Enum):
    """Pipeline stage that produced an audit entry."""

    RECALL = "recall"
    APPLY = "apply"
    DECIDE = "decide"
    LEARN = "learn"


@dataclass(slots=True)
class MemoryEntry:
    """
    A unit of learned vendor knowledge.

    Attributes:
        key: Namespaced rule key, e.g. ``sku_mapping:freight``.
        value: JSON-compatible payload, see ``payload`` for the typed view.
        confidence: Trust in this memory, kept within [0, 1] by the store.
        vendor_name: Owning vendor; None applies to every vendor.
        type: Classification of the memory.
        positive_reinforcements: Confirming human feedback count.
        negative_reinforcements: Contradicting human feedback count.
        id: Assigned by the store on creation.
        created_at: Creation timestamp.
        updated_at: Last write timestamp.
        last_used_at: Last time a rule applied this memory.
    """

    key: str
    value: Any
    confidence: float
    vendor_name: str | None = None
    type: MemoryType = MemoryType.VENDOR
    positive_reinforcements: int = 0
    negative_reinforcements: int = 0
    id: int | None = None
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    last_used_at: str | None = None

    @classmethod
    def create(
        cls,
        vendor_name: str | None,
        key: str,
        payload: MemoryPayload | Any,
        confidence: float,
        memory_type: MemoryType = MemoryType.VENDOR,
    ) -> MemoryEntry:
        """Build an unsaved memory seeded by one confirming correction."""
        return cls(
            key=key,
            value=encode_payload(payload),
            confidence=confidence,
            vendor_name=vendor_name,
            type=memory_type,
            positive_reinforcements=1,
        )

    @property
    def payload(self) -> MemoryPayload:
        """Typed view of ``value`` chosen by the key namespace."""
        return decode_payload(self.key, self.value)

    def reinforced(self, step: float = REINFORCEMENT_STEP) -> MemoryEntry:
        """Copy with confidence raised by ``step`` and one more confirmation."""
        return replace(
            self,
            confidence=clamp_confidence(self.confidence + step),
            positive_reinforcements=self.positive_reinforcements + 1,
        )

    def weakened(self, step: float = REINFORCEMENT_STEP) -> MemoryEntry:
        """Copy with confidence lowered by ``step`` and one more contradiction."""
        return replace(
            self,
            confidence=clamp_confidence(self.confidence - step),
            negative_reinforcements=self.negative_reinforcements + 1,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "vendorName": self.vendor_name,
            "type": self.type.value,
            "key": self.key,
            "value": self.value,
            "confidence": self.confidence,
            "positiveReinforcements": self.positive_reinforcements,
            "negativeReinforcements": self.negative_reinforcements,
            "lastUsedAt": self.last_used_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """One append-only narration line of a processing or learning call."""

    step: AuditStep
    details: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "step": self.step.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    """A previously seen invoice with the same vendor and number."""

    id: str
    invoice_date: str
