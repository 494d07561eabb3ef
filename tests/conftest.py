"""
Pytest Configuration and Shared Fixtures.

Provides isolated memory stores, engines and sample vendor invoices for
all test files.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

# Add repository root to Python path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from invoice_memory.config import get_settings
from invoice_memory.engine import DecisionEngine
from invoice_memory.memory import MemoryStore, reset_memory_store


# =============================================================================
# Sample invoices
# =============================================================================


@pytest.fixture
def supplier_invoice() -> dict[str, Any]:
    """Supplier GmbH invoice printing the service date as Leistungsdatum."""
    return {
        "invoiceId": "INV-A-001",
        "vendor": "Supplier GmbH",
        "confidence": 0.78,
        "rawText": "Rechnungsnr INV-2024-001 Leistungsdatum: 01.01.2024",
        "fields": {
            "invoiceNumber": "INV-2024-001",
            "invoiceDate": "2024-01-12",
            "serviceDate": None,
            "currency": "EUR",
            "lineItems": [
                {"sku": "WIDGET-001", "description": "Widget", "qty": 100, "unitPrice": 25.0}
            ],
        },
    }


@pytest.fixture
def parts_invoice() -> dict[str, Any]:
    """Parts AG invoice with VAT-inclusive prices and no currency field."""
    return {
        "invoiceId": "INV-B-001",
        "vendor": "Parts AG",
        "confidence": 0.74,
        "rawText": "PA-7781 MwSt. inkl. EUR",
        "fields": {
            "invoiceNumber": "PA-7781",
            "invoiceDate": "2024-02-05",
            "currency": None,
            "lineItems": [
                {"sku": "BOLT-99", "description": "Bolts", "qty": 200, "unitPrice": 10.0}
            ],
        },
    }


@pytest.fixture
def freight_invoice() -> dict[str, Any]:
    """Freight & Co invoice with Skonto terms and an unmapped freight line."""
    return {
        "invoiceId": "INV-C-001",
        "vendor": "Freight & Co",
        "confidence": 0.79,
        "rawText": "FC-1001 2% Skonto 10 days Seefracht Shipping",
        "fields": {
            "invoiceNumber": "FC-1001",
            "invoiceDate": "2024-03-01",
            "lineItems": [
                {"sku": None, "description": "Seefracht Shipping", "qty": 1, "unitPrice": 1000}
            ],
        },
    }


# =============================================================================
# Function-scoped Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch) -> Generator[None, None, None]:
    """Point default settings at a temporary database and reset singletons."""
    monkeypatch.setenv("MEMORY_DB_PATH", str(tmp_path / "default" / "memory.db"))
    get_settings.cache_clear()
    reset_memory_store()
    yield
    reset_memory_store()
    get_settings.cache_clear()

    # Drop handlers installed by configure_logging()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Temporary SQLite database path."""
    return tmp_path / "data" / "memory.db"


@pytest.fixture
def store(db_path) -> Generator[MemoryStore, None, None]:
    """Fresh memory store on a temporary database."""
    memory_store = MemoryStore(db_path=db_path)
    yield memory_store
    memory_store.close()


@pytest.fixture
def engine(store) -> DecisionEngine:
    """Decision engine with the built-in vendor handlers."""
    return DecisionEngine(store)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Pytest configuration hook."""
    # Add custom markers
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection."""
    # Add markers based on test location
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
