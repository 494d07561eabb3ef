"""
Integration tests for the process -> learn -> re-process cycle.

Each scenario runs against a real SQLite store and the built-in vendor
handlers, checking the behaviour before and after a reviewer's correction.
"""

import pytest

from invoice_memory.engine import DecisionEngine
from invoice_memory.memory import MemoryStore
from invoice_memory.memory.models import AuditStep


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _correction(invoice_id, vendor, field, to, reason="", from_value=None):
    return {
        "invoiceId": invoice_id,
        "vendor": vendor,
        "corrections": [{"field": field, "from": from_value, "to": to, "reason": reason}],
        "finalDecision": "approved",
    }


# ---------------------------------------------------------------------------
# Vendor scenarios
# ---------------------------------------------------------------------------


class TestSupplierGmbHCycle:

    def test_service_date_learned_from_leistungsdatum(self, engine, supplier_invoice):
        before = engine.process(supplier_invoice)

        assert before.normalized_invoice["serviceDate"] is None
        assert before.proposed_corrections == []
        assert before.confidence_score == pytest.approx(0.78)
        assert before.requires_human_review is True
        assert 'Found "Leistungsdatum" in rawText but no vendor memory yet' in before.reasoning

        engine.learn_from_correction(
            _correction("INV-A-001", "Supplier GmbH", "serviceDate", "2024-01-01", "Leistungsdatum")
        )
        after = engine.process(supplier_invoice)

        assert after.normalized_invoice["serviceDate"] == "2024-01-01"
        assert after.proposed_corrections == [
            "Set serviceDate=2024-01-01 based on vendor memory for Leistungsdatum"
        ]
        assert after.confidence_score == pytest.approx(0.93)
        assert after.requires_human_review is True


class TestPartsAGCycle:

    def test_vat_inclusive_strategy_learned(self, engine, parts_invoice):
        before = engine.process(parts_invoice)

        assert before.proposed_corrections == ["Recovered missing currency from raw text: EUR"]
        assert before.confidence_score == pytest.approx(0.84)
        assert "no stored strategy yet" in before.reasoning

        engine.learn_from_correction(
            _correction("INV-B-001", "Parts AG", "grossTotal", 2380, "VAT inclusive", from_value=2400)
        )
        after = engine.process(parts_invoice)

        assert after.proposed_corrections[0].startswith(
            "Recompute net and tax from gross because prices are VAT-inclusive"
        )
        assert after.proposed_corrections[1] == "Recovered missing currency from raw text: EUR"
        assert after.normalized_invoice["currency"] == "EUR"
        assert after.confidence_score == pytest.approx(0.99)
        assert after.requires_human_review is True

    def test_currency_default_mentioned_when_not_recoverable(self, engine, parts_invoice):
        engine.learn_from_correction(_correction("INV-B-001", "Parts AG", "currency", "EUR"))
        parts_invoice["rawText"] = "PA-7781"
        result = engine.process(parts_invoice)

        assert result.normalized_invoice["currency"] is None
        assert "Vendor memory suggests default currency EUR" in result.reasoning


class TestFreightCoCycle:

    def test_freight_sku_learned(self, engine, freight_invoice):
        before = engine.process(freight_invoice)

        assert before.normalized_invoice["paymentTerms"]["skonto"] == {"percent": 2, "days": 10}
        assert before.normalized_invoice["lineItems"][0]["sku"] is None
        assert before.confidence_score == pytest.approx(0.89)
        assert "no SKU mapping yet" in before.reasoning

        engine.learn_from_correction(
            _correction("INV-C-001", "Freight & Co", "lineItems0.sku", "FREIGHT", "Freight mapping")
        )
        after = engine.process(freight_invoice)

        assert after.normalized_invoice["lineItems"][0]["sku"] == "FREIGHT"
        assert 'Mapped line 1 "Seefracht Shipping" to SKU FREIGHT.' in after.proposed_corrections
        assert after.confidence_score == pytest.approx(0.99)

    def test_skonto_memory_reinforced_by_repeated_corrections(self, engine, store):
        for _ in range(3):
            engine.learn_from_correction(
                _correction("INV-C-001", "Freight & Co", "discountTerms", "2% Skonto 10 days")
            )

        memory = store.find_memory("Freight & Co", "payment_terms:skonto")
        assert memory.confidence == pytest.approx(0.9)
        assert memory.positive_reinforcements == 3


# ---------------------------------------------------------------------------
# Cross-cutting properties
# ---------------------------------------------------------------------------


class TestCycleProperties:

    def test_vendor_memories_do_not_leak(self, engine, supplier_invoice):
        engine.learn_from_correction(
            _correction("INV-A-001", "Supplier GmbH", "serviceDate", "2024-01-01")
        )
        supplier_invoice["vendor"] = "Supplier AG"
        result = engine.process(supplier_invoice)

        assert result.normalized_invoice["serviceDate"] is None
        assert result.audit_trail[0].details == "Recalled 0 memories for vendor Supplier AG"

    def test_duplicate_across_vendor_invoices(self, engine, parts_invoice):
        engine.process(parts_invoice)

        resubmitted = dict(parts_invoice, invoiceId="INV-B-002", confidence=0.99)
        resubmitted["fields"] = dict(parts_invoice["fields"], currency="EUR", invoiceDate="2024-02-06")
        result = engine.process(resubmitted)

        assert "Flagged as possible duplicate of INV-B-001" in result.proposed_corrections
        assert result.confidence_score == pytest.approx(0.79)
        assert result.requires_human_review is True

    def test_confidence_stays_bounded_after_heavy_reinforcement(self, engine, store, freight_invoice):
        for _ in range(12):
            engine.learn_from_correction(
                _correction("INV-C-001", "Freight & Co", "freightSku", "FREIGHT")
            )
        memory = store.find_memory("Freight & Co", "sku_mapping:freight")
        assert memory.confidence == 1.0
        assert memory.positive_reinforcements == 12

        freight_invoice["confidence"] = 1.0
        result = engine.process(freight_invoice)
        assert 0.0 <= result.confidence_score <= 1.0

    def test_audit_trail_spans_process_and_learn(self, engine, store, supplier_invoice):
        engine.process(supplier_invoice)
        engine.learn_from_correction(
            _correction("INV-A-001", "Supplier GmbH", "serviceDate", "2024-01-01")
        )
        engine.process(supplier_invoice)

        steps = [entry.step for entry in store.get_audit_trail("INV-A-001")]
        assert steps == [
            AuditStep.RECALL,
            AuditStep.APPLY,
            AuditStep.DECIDE,
            AuditStep.LEARN,
            AuditStep.RECALL,
            AuditStep.APPLY,
            AuditStep.DECIDE,
        ]

    def test_memories_survive_reopen(self, db_path, supplier_invoice):
        with MemoryStore(db_path=db_path) as store:
            DecisionEngine(store).learn_from_correction(
                _correction("INV-A-001", "Supplier GmbH", "serviceDate", "2024-01-01")
            )

        with MemoryStore(db_path=db_path) as store:
            result = DecisionEngine(store).process(supplier_invoice)
        assert result.normalized_invoice["serviceDate"] == "2024-01-01"
