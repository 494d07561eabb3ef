"""
Vendor rule registry.

Maps exact vendor names to their rule handlers so the engine can dispatch
apply and learn calls without knowing individual vendors.
"""

from invoice_memory.engine.base import VendorRuleHandler
from invoice_memory.engine.rules import BUILTIN_HANDLERS


class VendorRuleRegistry:
    """
    Registry of vendor rule handlers.

    Vendor names are matched exactly (case-sensitive).

    Example:
        registry = VendorRuleRegistry()
        registry.register(PartsAGRules())

        handler = registry.get("Parts AG")
    """

    def __init__(self) -> None:
        self._handlers: dict[str, VendorRuleHandler] = {}

    def register(self, handler: VendorRuleHandler, replace: bool = False) -> None:
        """
        Register a handler under its vendor name.

        Args:
            handler: Handler to register.
            replace: Allow replacing an existing handler for the vendor.

        Raises:
            ValueError: If the handler has no vendor name, or the vendor is
                already registered and ``replace`` is False.
        """
        if not handler.vendor:
            raise ValueError(f"{handler!r} does not declare a vendor name")
        if handler.vendor in self._handlers and not replace:
            raise ValueError(f"A rule handler for {handler.vendor!r} is already registered")
        self._handlers[handler.vendor] = handler

    def unregister(self, vendor: str) -> bool:
        """Remove a vendor's handler. Returns False if none was registered."""
        return self._handlers.pop(vendor, None) is not None

    def get(self, vendor: str) -> VendorRuleHandler | None:
        """Handler for exactly this vendor name, or None."""
        return self._handlers.get(vendor)

    def vendors(self) -> list[str]:
        """Registered vendor names in registration order."""
        return list(self._handlers)

    def __contains__(self, vendor: object) -> bool:
        return vendor in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def build_default_registry() -> VendorRuleRegistry:
    """Registry pre-populated with the built-in vendor handlers."""
    registry = VendorRuleRegistry()
    for handler_class in BUILTIN_HANDLERS:
        registry.register(handler_class())
    return registry
