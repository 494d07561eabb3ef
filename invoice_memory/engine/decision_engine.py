"""
Decision engine.

Orchestrates the recall -> apply -> decide pipeline for extracted invoices
and dispatches human corrections to the vendor learning handlers.

Pipeline:
1. Recall: load vendor and global memories above the recall threshold
2. Apply: run the vendor's rule handler against a working copy of the fields
3. Duplicate check: record invoice identity and look for an earlier copy
4. Decide: auto-accept only with high confidence and nothing left to correct
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from invoice_memory.config import EngineSettings, get_logger, get_settings
from invoice_memory.engine.base import InvoiceValidationError, MemoryLearner, RuleContext
from invoice_memory.engine.registry import VendorRuleRegistry, build_default_registry
from invoice_memory.memory.models import AuditEntry, AuditStep
from invoice_memory.memory.store import MemoryStore
from invoice_memory.schemas.correction import HumanCorrection
from invoice_memory.schemas.invoice import ExtractedInvoice
from invoice_memory.utils.date_utils import to_iso_date


logger = get_logger(__name__)


@dataclass(slots=True)
class DecisionResult:
    """
    Outcome of processing one invoice.

    Attributes:
        normalized_invoice: Invoice fields with rule overrides applied.
        proposed_corrections: Corrections a reviewer should confirm.
        requires_human_review: Whether the invoice must go to a reviewer.
        reasoning: Rationale sentences joined by a single space.
        confidence_score: Final confidence between 0 and 1.
        memory_updates: Store writes made while processing.
        audit_trail: Audit entries produced by this call.
    """

    normalized_invoice: dict[str, Any]
    proposed_corrections: list[str]
    requires_human_review: bool
    reasoning: str
    confidence_score: float
    memory_updates: list[str] = field(default_factory=list)
    audit_trail: list[AuditEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "normalizedInvoice": self.normalized_invoice,
            "proposedCorrections": list(self.proposed_corrections),
            "requiresHumanReview": self.requires_human_review,
            "reasoning": self.reasoning,
            "confidenceScore": self.confidence_score,
            "memoryUpdates": list(self.memory_updates),
            "auditTrail": [entry.to_dict() for entry in self.audit_trail],
        }


def _validation_details(error: ValidationError) -> dict[str, Any]:
    return {
        "errors": [
            {
                "loc": ".".join(str(part) for part in item["loc"]),
                "msg": item["msg"],
                "type": item["type"],
            }
            for item in error.errors()
        ]
    }


class DecisionEngine:
    """
    Memory-driven invoice decision engine.

    Example:
        store = MemoryStore("./data/memory.db")
        engine = DecisionEngine(store)

        result = engine.process(invoice)
        if result.requires_human_review:
            ...
        updates = engine.learn_from_correction(correction)
    """

    def __init__(
        self,
        store: MemoryStore,
        registry: VendorRuleRegistry | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            store: Persistence for memories, invoice metadata and audit.
            registry: Vendor rule handlers. Defaults to the built-in vendors.
            settings: Thresholds. Defaults to application settings.
        """
        self._store = store
        self._registry = registry if registry is not None else build_default_registry()
        self._settings = settings if settings is not None else get_settings().engine
        self._logger = logger

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def registry(self) -> VendorRuleRegistry:
        return self._registry

    # =====================================================================
    # Processing
    # =====================================================================

    def process(self, invoice: ExtractedInvoice | Mapping[str, Any]) -> DecisionResult:
        """
        Run the decision pipeline for one invoice.

        Args:
            invoice: Extracted invoice, or its camelCase/snake_case mapping.

        Returns:
            DecisionResult with normalized fields, corrections and audit.

        Raises:
            InvoiceValidationError: If a mapping is not a valid invoice.
            StorageError: If the store fails (including audit writes).
        """
        invoice = self._coerce_invoice(invoice)
        audit_trail: list[AuditEntry] = []

        def record(step: AuditStep, details: str) -> None:
            entry = AuditEntry(step=step, details=details)
            self._store.record_audit(invoice.invoice_id, entry)
            audit_trail.append(entry)

        self._logger.debug(
            "invoice_processing_started",
            invoice_id=invoice.invoice_id,
            vendor=invoice.vendor,
        )

        # Recall
        memories = self._store.get_vendor_memories(
            invoice.vendor, self._settings.min_memory_confidence
        )
        record(AuditStep.RECALL, f"Recalled {len(memories)} memories for vendor {invoice.vendor}")

        # Apply
        context = RuleContext(
            invoice=invoice,
            memories=memories,
            fields=invoice.fields.to_working_copy(),
            confidence_score=invoice.confidence,
        )
        handler = self._registry.get(invoice.vendor)
        if handler is not None:
            handler.apply(context)
            record(
                AuditStep.APPLY,
                f"Applied vendor memories for {invoice.vendor}; "
                f"proposed {len(context.proposed_corrections)} corrections.",
            )
        else:
            record(AuditStep.APPLY, f"No vendor rules registered for {invoice.vendor}.")

        memory_updates: list[str] = []
        for memory in context.used_memories:
            if memory.id is None:
                continue
            self._store.mark_memory_used(memory.id)
            memory_updates.append(f"Marked vendor memory #{memory.id} ({memory.key}) as used.")

        # Duplicate check
        self._check_duplicate(invoice, context, record)

        # Decide
        requires_review = not (
            context.confidence_score >= self._settings.auto_accept_threshold
            and not context.proposed_corrections
        )
        if requires_review:
            context.explain(
                "Invoice requires human review due to missing or low-confidence rules or corrections."
            )
        else:
            context.explain("High confidence and no unresolved issues -> auto-accept.")
        record(
            AuditStep.DECIDE,
            f"requiresHumanReview={str(requires_review).lower()}, "
            f"confidenceScore={context.confidence_score:.2f}",
        )

        result = DecisionResult(
            normalized_invoice=context.fields,
            proposed_corrections=context.proposed_corrections,
            requires_human_review=requires_review,
            reasoning=" ".join(context.reasoning),
            confidence_score=context.confidence_score,
            memory_updates=memory_updates,
            audit_trail=audit_trail,
        )

        self._logger.info(
            "invoice_processed",
            invoice_id=invoice.invoice_id,
            vendor=invoice.vendor,
            memories_recalled=len(memories),
            corrections=len(result.proposed_corrections),
            confidence=result.confidence_score,
            requires_review=result.requires_human_review,
        )
        return result

    def _check_duplicate(
        self,
        invoice: ExtractedInvoice,
        context: RuleContext,
        record: Callable[[AuditStep, str], None],
    ) -> None:
        """Persist invoice identity and flag an earlier invoice with the same number."""
        fields = invoice.fields
        invoice_date = to_iso_date(fields.invoice_date) or fields.invoice_date

        self._store.save_invoice_meta(
            invoice.invoice_id, invoice.vendor, fields.invoice_number, invoice_date
        )
        duplicate = self._store.find_duplicate(
            invoice.vendor,
            fields.invoice_number,
            invoice_date,
            exclude_invoice_id=invoice.invoice_id,
        )
        if duplicate is None:
            return

        context.propose(f"Flagged as possible duplicate of {duplicate.id}")
        context.penalize(self._settings.duplicate_penalty)
        context.explain(
            f"Detected potential duplicate (same vendor + invoiceNumber + close dates) with {duplicate.id}."
        )
        record(AuditStep.APPLY, f"Duplicate check: found possible duplicate {duplicate.id}.")
        self._logger.warning(
            "duplicate_invoice_detected",
            invoice_id=invoice.invoice_id,
            duplicate_of=duplicate.id,
            vendor=invoice.vendor,
            invoice_number=fields.invoice_number,
        )

    # =====================================================================
    # Learning
    # =====================================================================

    def learn_from_correction(self, correction: HumanCorrection | Mapping[str, Any]) -> list[str]:
        """
        Turn a reviewer's correction into memory updates.

        Args:
            correction: Human correction, or its camelCase/snake_case mapping.

        Returns:
            Descriptions of the memories created or reinforced. Empty when
            the vendor has no learning handler or nothing was recognized.

        Raises:
            InvoiceValidationError: If a mapping is not a valid correction.
            StorageError: If the store fails.
        """
        correction = self._coerce_correction(correction)

        handler = self._registry.get(correction.vendor)
        if handler is None:
            self._logger.info(
                "no_learning_handler",
                vendor=correction.vendor,
                invoice_id=correction.invoice_id,
            )
            return []

        learner = MemoryLearner(self._store, correction)
        updates = handler.learn(correction, learner)

        self._logger.info(
            "correction_learned",
            invoice_id=correction.invoice_id,
            vendor=correction.vendor,
            corrections=len(correction.corrections),
            memory_updates=len(updates),
        )
        return updates

    # =====================================================================
    # Input validation
    # =====================================================================

    @staticmethod
    def _coerce_invoice(invoice: ExtractedInvoice | Mapping[str, Any]) -> ExtractedInvoice:
        if isinstance(invoice, ExtractedInvoice):
            return invoice
        try:
            return ExtractedInvoice.model_validate(invoice)
        except ValidationError as e:
            raise InvoiceValidationError(
                f"Invalid invoice: {e.error_count()} validation error(s)",
                details=_validation_details(e),
            ) from e

    @staticmethod
    def _coerce_correction(correction: HumanCorrection | Mapping[str, Any]) -> HumanCorrection:
        if isinstance(correction, HumanCorrection):
            return correction
        try:
            return HumanCorrection.model_validate(correction)
        except ValidationError as e:
            raise InvoiceValidationError(
                f"Invalid correction: {e.error_count()} validation error(s)",
                details=_validation_details(e),
            ) from e
