"""
Tests for invoice_memory/cli.py: argparse command line.
"""

import json

import pytest

from invoice_memory.cli import build_parser, load_json_array, main
from invoice_memory.memory import MemoryStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestBuildParser:

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_global_options(self):
        args = build_parser().parse_args(["--db", "x.db", "--reset", "demo"])
        assert args.db == "x.db"
        assert args.reset is True
        assert args.command == "demo"

    def test_process_json_flag(self, tmp_path):
        args = build_parser().parse_args(["process", str(tmp_path / "in.json"), "--json"])
        assert args.json is True


class TestLoadJsonArray:

    def test_rejects_object(self, tmp_path):
        path = _write_json(tmp_path / "obj.json", {"invoiceId": "x"})
        with pytest.raises(ValueError):
            load_json_array(path)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestCommands:

    def test_process_prints_summary(self, tmp_path, capsys, parts_invoice):
        path = _write_json(tmp_path / "invoices.json", [parts_invoice])
        db = tmp_path / "cli.db"

        assert main(["--db", str(db), "process", str(path)]) == 0

        out = capsys.readouterr().out
        assert "INV-B-001" in out
        assert "review=true" in out
        assert "Recovered missing currency from raw text: EUR" in out

    def test_process_json_output(self, tmp_path, capsys, freight_invoice):
        path = _write_json(tmp_path / "invoices.json", [freight_invoice])

        assert main(["--db", str(tmp_path / "cli.db"), "process", str(path), "--json"]) == 0

        results = json.loads(capsys.readouterr().out)
        assert results[0]["normalizedInvoice"]["paymentTerms"] == {"skonto": {"percent": 2, "days": 10}}
        assert results[0]["requiresHumanReview"] is True

    def test_learn_then_memories(self, tmp_path, capsys):
        corrections = [
            {
                "invoiceId": "INV-B-001",
                "vendor": "Parts AG",
                "corrections": [{"field": "currency", "from": None, "to": "EUR", "reason": ""}],
                "finalDecision": "approved",
            },
            {"invoiceId": "INV-Z-1", "vendor": "Unknown", "corrections": []},
        ]
        path = _write_json(tmp_path / "corrections.json", corrections)
        db = str(tmp_path / "cli.db")

        assert main(["--db", db, "learn", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Created vendor memory" in out
        assert "INV-Z-1    -> nothing learned" in out

        assert main(["--db", db, "memories"]) == 0
        assert "currency_default" in capsys.readouterr().out

    def test_reset_clears_store(self, tmp_path, capsys):
        db = tmp_path / "cli.db"
        assert main(["--db", str(db), "demo"]) == 0
        capsys.readouterr()

        assert main(["--db", str(db), "--reset", "memories"]) == 0
        assert "No memories stored." in capsys.readouterr().out

    def test_demo_learns_and_auto_fixes(self, tmp_path, capsys):
        db = tmp_path / "demo.db"
        assert main(["--db", str(db), "demo"]) == 0

        out = capsys.readouterr().out
        assert "Set serviceDate=2024-01-01 based on vendor memory for Leistungsdatum" in out
        assert 'Mapped line 1 "Seefracht Shipping" to SKU FREIGHT.' in out

        with MemoryStore(db_path=db) as store:
            keys = {memory.key for memory in store.list_memories()}
        assert keys == {
            "label_mapping:Leistungsdatum",
            "tax_behavior:VAT_INCLUSIVE",
            "sku_mapping:freight",
        }


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:

    def test_missing_file(self, tmp_path, capsys):
        assert main(["--db", str(tmp_path / "cli.db"), "process", str(tmp_path / "nope.json")]) == 1
        assert "error:" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["--db", str(tmp_path / "cli.db"), "learn", str(path)]) == 1

    def test_invalid_invoice(self, tmp_path, capsys):
        path = _write_json(tmp_path / "invoices.json", [{"invoiceId": "x"}])
        assert main(["--db", str(tmp_path / "cli.db"), "process", str(path)]) == 1
        assert "Invalid invoice" in capsys.readouterr().err
