"""
Vendor-memory invoice decision engine.

Learns vendor-specific facts and correction rules from human review and
applies them to later invoices from the same vendor, deciding whether an
invoice can be auto-accepted or needs review.

Usage:
    from invoice_memory import DecisionEngine, MemoryStore

    with MemoryStore("./data/memory.db") as store:
        engine = DecisionEngine(store)
        result = engine.process(invoice)
        engine.learn_from_correction(correction)
"""

from importlib.metadata import PackageNotFoundError, version

from invoice_memory.config import configure_logging, get_logger, get_settings
from invoice_memory.engine import (
    DecisionEngine,
    DecisionResult,
    EngineError,
    InvoiceValidationError,
    VendorRuleHandler,
    VendorRuleRegistry,
)
from invoice_memory.memory import (
    AuditEntry,
    MemoryEntry,
    MemoryStore,
    StorageError,
    get_memory_store,
)
from invoice_memory.schemas import ExtractedInvoice, HumanCorrection


try:
    __version__ = version("invoice-memory")
except PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "__version__",
    # Configuration
    "configure_logging",
    "get_logger",
    "get_settings",
    # Engine
    "DecisionEngine",
    "DecisionResult",
    "EngineError",
    "InvoiceValidationError",
    "VendorRuleHandler",
    "VendorRuleRegistry",
    # Memory
    "AuditEntry",
    "MemoryEntry",
    "MemoryStore",
    "StorageError",
    "get_memory_store",
    # Schemas
    "ExtractedInvoice",
    "HumanCorrection",
]
