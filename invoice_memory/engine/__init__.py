"""
Decision engine package.

Runs the recall -> apply -> decide pipeline over extracted invoices and
learns vendor memories from human corrections through pluggable
per-vendor rule handlers.
"""

from invoice_memory.engine.base import (
    EngineError,
    InvoiceValidationError,
    MemoryLearner,
    RuleContext,
    VendorRuleHandler,
)
from invoice_memory.engine.decision_engine import DecisionEngine, DecisionResult
from invoice_memory.engine.registry import VendorRuleRegistry, build_default_registry
from invoice_memory.engine.rules import (
    BUILTIN_HANDLERS,
    FreightCoRules,
    PartsAGRules,
    SupplierGmbHRules,
)


__all__ = [
    # Engine
    "DecisionEngine",
    "DecisionResult",
    # Errors
    "EngineError",
    "InvoiceValidationError",
    # Rule plumbing
    "MemoryLearner",
    "RuleContext",
    "VendorRuleHandler",
    "VendorRuleRegistry",
    "build_default_registry",
    # Built-in vendors
    "BUILTIN_HANDLERS",
    "FreightCoRules",
    "PartsAGRules",
    "SupplierGmbHRules",
]
