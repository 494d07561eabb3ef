"""
Base classes for vendor rule handlers.

A handler owns one vendor's apply-time rules (which read the recalled
memories and propose corrections) and learn-time rules (which turn human
corrections into new or reinforced memories).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from invoice_memory.config import get_logger
from invoice_memory.memory.models import AuditEntry, AuditStep, MemoryEntry
from invoice_memory.memory.payloads import MemoryPayload
from invoice_memory.memory.store import MemoryStore
from invoice_memory.schemas.correction import HumanCorrection
from invoice_memory.schemas.invoice import ExtractedInvoice


# Keeps additive float noise out of threshold comparisons
SCORE_PRECISION = 6


class EngineError(Exception):
    """Base exception for decision engine errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize engine error.

        Args:
            message: Error message.
            details: Additional error details.
        """
        super().__init__(message)
        self.details = details or {}


class InvoiceValidationError(EngineError):
    """Malformed or incomplete invoice or correction input."""

    pass


@dataclass
class RuleContext:
    """
    Working state shared by the rules applied to one invoice.

    The input invoice is never modified; rules write into ``fields``, which
    becomes the normalized invoice of the decision.

    Attributes:
        invoice: The immutable extracted invoice.
        memories: Memories recalled for the invoice's vendor.
        fields: Working copy of the invoice fields (camelCase keys).
        confidence_score: Running confidence score.
        proposed_corrections: Human-readable correction descriptions.
        reasoning: Rationale sentences.
        used_memories: Memories that an applied rule relied on.
    """

    invoice: ExtractedInvoice
    memories: list[MemoryEntry]
    fields: dict[str, Any]
    confidence_score: float
    proposed_corrections: list[str] = field(default_factory=list)
    reasoning: list[str] = field(default_factory=list)
    used_memories: list[MemoryEntry] = field(default_factory=list)

    @property
    def raw_text(self) -> str:
        return self.invoice.raw_text

    def find_memory(self, key: str) -> MemoryEntry | None:
        """First recalled memory with exactly this key."""
        for memory in self.memories:
            if memory.key == key:
                return memory
        return None

    def boost(self, delta: float) -> None:
        """Raise the score by ``delta``, capped at 1 for this addition."""
        self.confidence_score = round(min(1.0, self.confidence_score + delta), SCORE_PRECISION)

    def penalize(self, delta: float) -> None:
        """Lower the score by ``delta``, floored at 0."""
        self.confidence_score = round(max(self.confidence_score - delta, 0.0), SCORE_PRECISION)

    def propose(self, correction: str) -> None:
        self.proposed_corrections.append(correction)

    def explain(self, sentence: str) -> None:
        self.reasoning.append(sentence)

    def use(self, memory: MemoryEntry) -> None:
        """Record that an applied rule relied on ``memory``."""
        if all(m.id != memory.id for m in self.used_memories):
            self.used_memories.append(memory)


class MemoryLearner:
    """
    Create-or-reinforce helper handed to learn-time rules.

    Looks up the memory by exact (vendor, key); reinforces it when found,
    otherwise inserts it at the rule's seed confidence. Handlers call
    ``audit`` once per learned rule, attributed to the correcting invoice.
    """

    def __init__(self, store: MemoryStore, correction: HumanCorrection) -> None:
        self._store = store
        self._correction = correction
        self._logger = get_logger("engine.learner")
        self.audit_entries: list[AuditEntry] = []

    @property
    def vendor(self) -> str:
        return self._correction.vendor

    def find(self, key: str) -> MemoryEntry | None:
        return self._store.find_memory(self.vendor, key)

    def reinforce(self, existing: MemoryEntry, description: str) -> str:
        """Reinforce ``existing`` and return the update description."""
        saved = self._store.update_memory(existing.reinforced())
        self._logger.info(
            "memory_reinforced",
            memory_id=saved.id,
            vendor=self.vendor,
            key=saved.key,
            confidence=saved.confidence,
            invoice_id=self._correction.invoice_id,
        )
        return f"Reinforced vendor memory #{saved.id} for {self.vendor}: {description}."

    def create(
        self,
        key: str,
        payload: MemoryPayload,
        seed_confidence: float,
        description: str,
    ) -> str:
        """Insert a new memory and return the update description."""
        saved = self._store.save_memory(
            MemoryEntry.create(self.vendor, key, payload, seed_confidence)
        )
        return f"Created vendor memory #{saved.id} for {self.vendor}: {description}."

    def reinforce_or_create(
        self,
        key: str,
        payload: MemoryPayload,
        seed_confidence: float,
        description: str,
    ) -> str:
        existing = self.find(key)
        if existing is not None:
            return self.reinforce(existing, description)
        return self.create(key, payload, seed_confidence, description)

    def audit(self, details: str) -> None:
        """Append a ``learn`` audit entry for the correcting invoice."""
        entry = AuditEntry(step=AuditStep.LEARN, details=details)
        self._store.record_audit(self._correction.invoice_id, entry)
        self.audit_entries.append(entry)


class VendorRuleHandler(ABC):
    """
    Apply/learn rule pair for one vendor.

    Subclasses set ``vendor`` to the exact (case-sensitive) vendor name.
    """

    vendor: ClassVar[str] = ""

    @abstractmethod
    def apply(self, context: RuleContext) -> None:
        """
        Apply this vendor's rules to an invoice.

        Args:
            context: Working state; rules write fields, corrections,
                reasoning and score adjustments into it.
        """

    @abstractmethod
    def learn(self, correction: HumanCorrection, learner: MemoryLearner) -> list[str]:
        """
        Turn a human correction into memory updates.

        Args:
            correction: The reviewer's correction for one invoice.
            learner: Create-or-reinforce helper bound to the store.

        Returns:
            Human-readable descriptions of the memory updates made.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(vendor={self.vendor!r})"
