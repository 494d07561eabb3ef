"""
Built-in vendor rule handlers.
"""

from invoice_memory.engine.rules.freight_co import FreightCoRules
from invoice_memory.engine.rules.parts_ag import PartsAGRules
from invoice_memory.engine.rules.supplier_gmbh import SupplierGmbHRules


BUILTIN_HANDLERS = (SupplierGmbHRules, PartsAGRules, FreightCoRules)

__all__ = [
    "BUILTIN_HANDLERS",
    "FreightCoRules",
    "PartsAGRules",
    "SupplierGmbHRules",
]
