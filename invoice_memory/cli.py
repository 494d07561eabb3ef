"""
Invoice memory command line.

Runs the decision engine over invoice batches, feeds human corrections back
into vendor memory and ships a self-contained three-vendor demo.

Usage:
    invoice-memory process invoices.json          Decide a batch of invoices
    invoice-memory process invoices.json --json   Print full decisions as JSON
    invoice-memory learn corrections.json         Learn from reviewer corrections
    invoice-memory demo                           Process, learn, re-process samples
    invoice-memory memories                       List stored vendor memories
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from invoice_memory.config import configure_logging, get_logger
from invoice_memory.engine import DecisionEngine, DecisionResult, EngineError
from invoice_memory.memory import MemoryStore, StorageError, get_memory_store, reset_memory_store


logger = get_logger(__name__)


SAMPLE_INVOICES: list[dict[str, Any]] = [
    {
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
    },
    {
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
    },
    {
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
    },
]

SAMPLE_CORRECTIONS: list[dict[str, Any]] = [
    {
        "invoiceId": "INV-A-001",
        "vendor": "Supplier GmbH",
        "corrections": [
            {"field": "serviceDate", "from": None, "to": "2024-01-01", "reason": "Leistungsdatum"}
        ],
        "finalDecision": "approved",
    },
    {
        "invoiceId": "INV-B-001",
        "vendor": "Parts AG",
        "corrections": [
            {"field": "vatBehavior", "from": None, "to": "VAT_INCLUSIVE", "reason": "MwSt. inkl."}
        ],
        "finalDecision": "approved",
    },
    {
        "invoiceId": "INV-C-001",
        "vendor": "Freight & Co",
        "corrections": [
            {"field": "lineItems0.sku", "from": None, "to": "FREIGHT", "reason": "Freight mapping"}
        ],
        "finalDecision": "approved",
    },
]


def load_json_array(path: Path) -> list[Any]:
    """
    Load a JSON file whose top level is an array.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top level is not an array.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array, got {type(data).__name__}")
    return data


def format_summary(invoice_id: str, vendor: str, result: DecisionResult) -> str:
    """One-line decision summary."""
    return (
        f"{invoice_id:<10} {vendor:<14} -> review={str(result.requires_human_review).lower():<5} "
        f"confidence={result.confidence_score:.2f} corrections={len(result.proposed_corrections)}"
    )


def cmd_process(engine: DecisionEngine, args: argparse.Namespace) -> int:
    """Process a batch of invoices from a JSON file."""
    invoices = load_json_array(args.invoices)
    results = []

    for raw in invoices:
        result = engine.process(raw)
        results.append(result)
        if not args.json:
            print(format_summary(raw.get("invoiceId", "?"), raw.get("vendor", "?"), result))
            for correction in result.proposed_corrections:
                print(f"    - {correction}")

    if args.json:
        print(json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False))

    return 0


def cmd_learn(engine: DecisionEngine, args: argparse.Namespace) -> int:
    """Apply a batch of human corrections from a JSON file."""
    corrections = load_json_array(args.corrections)

    for raw in corrections:
        updates = engine.learn_from_correction(raw)
        invoice_id = raw.get("invoiceId", "?")
        if not updates:
            print(f"{invoice_id:<10} -> nothing learned")
        for update in updates:
            print(f"{invoice_id:<10} -> {update}")

    return 0


def cmd_memories(engine: DecisionEngine, args: argparse.Namespace) -> int:
    """List every stored memory."""
    memories = engine.store.list_memories()
    if not memories:
        print("No memories stored.")
        return 0

    for memory in memories:
        print(
            f"#{memory.id:<4} {memory.vendor_name or '<global>':<14} {memory.key:<30} "
            f"confidence={memory.confidence:.2f} +{memory.positive_reinforcements}"
            f"/-{memory.negative_reinforcements} value={json.dumps(memory.value, ensure_ascii=False)}"
        )
    return 0


def cmd_demo(engine: DecisionEngine, args: argparse.Namespace) -> int:
    """Process samples, learn from corrections, then re-process."""
    print("Processing sample invoices...")
    for invoice in SAMPLE_INVOICES:
        result = engine.process(invoice)
        print(f"{invoice['invoiceId']:<10} -> {result.reasoning}")

    print()
    print("Learning from human corrections...")
    for correction in SAMPLE_CORRECTIONS:
        updates = engine.learn_from_correction(correction)
        print(f"{correction['invoiceId']:<10} -> {', '.join(updates) or 'Nothing new'}")

    print()
    print("Re-processing with vendor memory...")
    for invoice in SAMPLE_INVOICES:
        result = engine.process(invoice)
        fixes = "; ".join(result.proposed_corrections) or "None"
        print(
            f"{invoice['invoiceId']:<10} -> Fixes: {fixes} | "
            f"Review: {str(result.requires_human_review).lower()}"
        )

    return 0


COMMANDS = {
    "process": cmd_process,
    "learn": cmd_learn,
    "memories": cmd_memories,
    "demo": cmd_demo,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="invoice-memory",
        description="Vendor-memory invoice decision engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  invoice-memory --reset demo                Run the demo on a clean store
  invoice-memory process invoices.json       Decide a batch of invoices
  invoice-memory --db ./mem.db memories      List memories of another store
        """,
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path (defaults to MEMORY_DB_PATH)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all memories, invoices and audit entries first",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    process_parser = subparsers.add_parser("process", help="Process invoices from a JSON array")
    process_parser.add_argument("invoices", type=Path, help="Path to invoices JSON")
    process_parser.add_argument(
        "--json",
        action="store_true",
        help="Print full decision results as JSON",
    )

    learn_parser = subparsers.add_parser("learn", help="Learn from human corrections")
    learn_parser.add_argument("corrections", type=Path, help="Path to corrections JSON")

    subparsers.add_parser("memories", help="List stored vendor memories")
    subparsers.add_parser("demo", help="Run the built-in three-vendor demo")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        store: MemoryStore = get_memory_store(args.db)
        if args.reset:
            store.reset()
        engine = DecisionEngine(store)
        return COMMANDS[args.command](engine, args)
    except (EngineError, StorageError) as e:
        logger.error("command_failed", command=args.command, error=str(e), details=e.details)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error("input_error", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        reset_memory_store()


if __name__ == "__main__":
    sys.exit(main())
