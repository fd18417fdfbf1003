"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog

from trustlens.config import Settings
from trustlens.logging_config import (
    LogContext,
    app_context_processor,
    build_processors,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestProcessors:
    def test_app_context_uses_given_settings(self):
        settings = Settings(app_name="TrustLens Staging", environment="staging")
        add_context = app_context_processor(settings)

        event = add_context(None, "info", {"event": "x"})

        assert event["app"] == "TrustLens Staging"
        assert event["environment"] == "staging"

    def test_json_chain_ends_in_json_renderer(self):
        processors = build_processors(Settings(environment="production"))

        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_chain_ends_in_console_renderer(self):
        processors = build_processors(Settings(environment="development"))

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


class TestConfigureLogging:
    def test_json_events_carry_context(self, capsys):
        settings = Settings(environment="production", app_name="TrustLens Test")
        configure_logging(settings)
        # basicConfig is a no-op once pytest has installed root handlers
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        root = logging.getLogger()
        root.addHandler(handler)
        try:
            with LogContext(transaction_id="txn-9"):
                get_logger("trustlens.test").warning("rule_checked", rule="velocity")
        finally:
            root.removeHandler(handler)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "rule_checked"
        assert event["level"] == "WARNING"
        assert event["app"] == "TrustLens Test"
        assert event["environment"] == "production"
        assert event["transaction_id"] == "txn-9"

    def test_third_party_loggers_are_quieted(self):
        configure_logging(Settings(log_level="DEBUG", log_format="console"))

        assert logging.getLogger("httpx").level == logging.INFO
        assert logging.getLogger("pymongo").level == logging.INFO
