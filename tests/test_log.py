"""Tests for logging configuration."""

import json
import logging

import pytest
import structlog

from novtl.log import configure_logging, redact_secrets, resolve_level


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    """Test level selection."""

    def test_configured_level_is_default(self):
        assert resolve_level(0, "warning") == logging.WARNING
        assert resolve_level(0, "DEBUG") == logging.DEBUG

    def test_flags_override_configured_level(self):
        assert resolve_level(1, "ERROR") == logging.DEBUG
        assert resolve_level(-1, "DEBUG") == logging.WARNING

    def test_unknown_name_falls_back_to_info(self):
        assert resolve_level(0, "chatty") == logging.INFO


class TestRedactSecrets:
    """Test the secret-masking processor."""

    def test_masks_api_key(self):
        event = redact_secrets(None, "info", {"event": "request", "api_key": "sk-abcdefghijkl"})
        assert event["api_key"] == "sk-abcde..."

    def test_leaves_other_fields(self):
        event = redact_secrets(None, "info", {"event": "request", "provider": "Gemini", "api_key": ""})
        assert event == {"event": "request", "provider": "Gemini", "api_key": ""}


class TestConfigureLogging:
    """Test configure_logging."""

    def test_uses_configured_level(self):
        configure_logging(level="ERROR")
        assert logging.getLogger().level == logging.ERROR

    def test_json_file_is_masked(self, tmp_path):
        log_file = tmp_path / "logs" / "novtl.jsonl"
        configure_logging(verbosity=-1, log_file=log_file)

        structlog.get_logger("novtl.test").debug("provider_request", api_key="sk-abcdefghijkl")

        record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert record["event"] == "provider_request"
        assert record["api_key"] == "sk-abcde..."
        assert record["level"] == "debug"
