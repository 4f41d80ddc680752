"""Unit tests for core.logger module.

Tests the structlog-based logging configuration:
- configure_logging() installs a single stdout handler on the root logger
- LOG_LEVEL and LOG_FORMAT environment variables are honored
- Noisy third-party loggers are quieted
"""

import json
import logging

import pytest
import structlog

from core.logger import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Save and restore root logger state around each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    structlog.reset_defaults()


@pytest.mark.unit
class TestConfigureLogging:
    def test_installs_single_handler(self):
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_respects_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        configure_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_log_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_quiets_third_party_loggers(self):
        configure_logging()
        assert logging.getLogger("google.auth").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_json_format_renders_structured_events(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        configure_logging()

        get_logger("tests.logger").info(
            "certificate.uploaded", key="42/certificate_7_3.png"
        )

        line = capsys.readouterr().out.strip().splitlines()[-1]
        parsed = json.loads(line)
        assert parsed["event"] == "certificate.uploaded"
        assert parsed["key"] == "42/certificate_7_3.png"
        assert parsed["level"] == "info"
        assert parsed["logger"] == "tests.logger"
        assert "timestamp" in parsed
