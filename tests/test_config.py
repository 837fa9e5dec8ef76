"""Tests for scanner configuration."""

import logging

import pytest
from pydantic import ValidationError

from a11y.config import ScannerConfig
from a11y.logging_config import setup_logging


class TestScannerConfig:
    """Test cases for ScannerConfig."""

    def test_defaults(self):
        config = ScannerConfig()

        assert config.headless is True
        assert config.page_timeout_ms == 15000
        assert config.dom_stability_timeout_ms == 3000
        assert config.batch_size == 3
        assert config.worker_concurrency == 2
        assert config.block_images is True
        assert config.locale == "nl"

    @pytest.mark.parametrize("field,value", [
        ("batch_size", 0),
        ("page_timeout_ms", 10),
        ("max_pages", 0),
        ("rate_limit_window_seconds", 0),
    ])
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            ScannerConfig(**{field: value})

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HEADLESS", "false")
        monkeypatch.setenv("PAGE_TIMEOUT_MS", "30000")
        monkeypatch.setenv("SCAN_BATCH_SIZE", "5")
        monkeypatch.setenv("BLOCK_IMAGES", "false")
        monkeypatch.setenv("AXE_CORE_PATH", "/opt/axe/axe.min.js")

        config = ScannerConfig.from_env()

        assert config.headless is False
        assert config.page_timeout_ms == 30000
        assert config.batch_size == 5
        assert config.block_images is False
        assert config.axe_core_path == "/opt/axe/axe.min.js"


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_sets_level_and_quiets_http_client(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("playwright").level == logging.WARNING

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "scanner.log"
        setup_logging(level="INFO", log_file=str(log_file))

        logging.getLogger("a11y.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "hello" in log_file.read_text()
        setup_logging(level="INFO")
