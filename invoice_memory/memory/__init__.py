"""
Vendor memory layer.

Provides persistent, confidence-weighted vendor memories:
- Learned label mappings, tax behaviour, payment terms and SKU mappings
- Invoice identity metadata for duplicate detection
- Append-only audit trail of every processing and learning call
"""

from invoice_memory.memory.models import (
    AuditEntry,
    AuditStep,
    DuplicateMatch,
    MemoryEntry,
    MemoryType,
    clamp_confidence,
)
from invoice_memory.memory.payloads import (
    CurrencyDefaultPayload,
    LabelMappingPayload,
    MemoryPayload,
    PaymentTermsPayload,
    RawPayload,
    SkuMappingPayload,
    TaxBehaviorPayload,
    decode_payload,
)
from invoice_memory.memory.store import (
    MemoryStore,
    StorageError,
    get_memory_store,
    reset_memory_store,
)

__all__ = [
    "AuditEntry",
    "AuditStep",
    "DuplicateMatch",
    "MemoryEntry",
    "MemoryType",
    "clamp_confidence",
    "CurrencyDefaultPayload",
    "LabelMappingPayload",
    "MemoryPayload",
    "PaymentTermsPayload",
    "RawPayload",
    "SkuMappingPayload",
    "TaxBehaviorPayload",
    "decode_payload",
    "MemoryStore",
    "StorageError",
    "get_memory_store",
    "reset_memory_store",
]
