"""
Tests for invoice_memory/config/logging_config.py: structlog setup and masking.
"""

import logging

import structlog

from invoice_memory.config.logging_config import (
    configure_logging,
    get_logger,
    mask_sensitive,
    mask_text,
)
from invoice_memory.config.settings import get_settings


class TestMaskText:

    def test_masks_iban(self):
        assert mask_text("Pay to DE89 3704 0044 0532 0130 00 now") == "Pay to [IBAN-MASKED] now"

    def test_masks_compact_iban(self):
        assert "[IBAN-MASKED]" in mask_text("IBAN GB29NWBK60161331926819")

    def test_masks_card_number(self):
        assert mask_text("card 4111-1111-1111-1111") == "card [CC-MASKED]"

    def test_leaves_invoice_text_alone(self):
        text = "Rechnungsnr INV-2024-001 Leistungsdatum: 01.01.2024"
        assert mask_text(text) == text


class TestMaskSensitiveProcessor:

    def test_masks_nested_values(self):
        event = {
            "event": "invoice_processed",
            "raw": {"text": "IBAN DE89370400440532013000"},
            "lines": ["4111 1111 1111 1111"],
        }
        result = mask_sensitive(None, "info", event)
        assert result["raw"]["text"] == "IBAN [IBAN-MASKED]"
        assert result["lines"] == ["[CC-MASKED]"]
        assert result["event"] == "invoice_processed"

    def test_disabled_by_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_MASK_SENSITIVE", "false")
        get_settings.cache_clear()
        event = {"event": "x", "iban": "DE89370400440532013000"}
        assert mask_sensitive(None, "info", event)["iban"] == "DE89370400440532013000"


class TestConfigureLogging:

    def test_installs_single_stream_handler(self):
        configure_logging()
        configure_logging()
        structlog_handlers = [
            handler
            for handler in logging.getLogger().handlers
            if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        assert len(structlog_handlers) == 1

    def test_json_file_output(self, tmp_path, monkeypatch):
        log_file = tmp_path / "logs" / "engine.log"
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_FILE_PATH", str(log_file))
        get_settings.cache_clear()

        configure_logging()
        logging.getLogger("invoice_memory.test").warning("plain stdlib message")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "plain stdlib message" in log_file.read_text(encoding="utf-8")

    def test_get_logger_returns_bound_logger(self):
        logger = get_logger("invoice_memory.test")
        assert hasattr(logger, "info")
