"""
Tests for monerokit_core.logging_config: formatters and secret redaction.
"""

import json
import logging

import pytest

from monerokit_core.config import LoggingConfig
from monerokit_core.logging_config import (
    RedactSecretsFilter,
    _HumanFormatter,
    _JSONFormatter,
    setup_logging,
    setup_logging_from_config,
)

PHRASE = "abandon " * 11 + "about"
KEY = "4fe2e8fa6ad56846a4b70b5cf85a8a5ff310d8eb5daaf5b11af9591d79fc0a02"


def _record(msg, *args, **extra):
    record = logging.LogRecord("monerokit_session", logging.INFO, __file__, 1, msg, args, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRedaction:
    def test_masks_key(self):
        record = _record("spend key %s", KEY)
        RedactSecretsFilter().filter(record)
        assert KEY not in record.getMessage()
        assert "<redacted key>" in record.getMessage()

    def test_masks_phrase(self):
        record = _record(f"restoring from {PHRASE}")
        RedactSecretsFilter().filter(record)
        assert "abandon" not in record.getMessage()

    def test_leaves_ordinary_messages(self):
        record = _record("Session started on %s", "node")
        RedactSecretsFilter().filter(record)
        assert record.getMessage() == "Session started on node"
        assert record.args == ("node",)


class TestFormatters:
    def test_json_includes_context(self):
        out = json.loads(_JSONFormatter().format(_record("hi", session_id="s1", wallet_id="w1")))
        assert out["msg"] == "hi"
        assert out["session_id"] == "s1"
        assert out["wallet_id"] == "w1"
        assert out["logger"] == "monerokit_session"

    def test_json_without_context(self):
        out = json.loads(_JSONFormatter().format(_record("hi")))
        assert "session_id" not in out

    def test_human_shows_wallet_tag(self):
        line = _HumanFormatter().format(_record("hello", wallet_id="w1"))
        assert "[w1] hello" in line
        assert "monerokit_session" in line


class TestSetup:
    def test_setup_logging(self, restore_root, tmp_path):
        log_file = tmp_path / "logs" / "kit.log"
        setup_logging(level="debug", fmt="json", log_file=str(log_file))
        assert restore_root.level == logging.DEBUG
        assert len(restore_root.handlers) == 2
        assert all(
            any(isinstance(f, RedactSecretsFilter) for f in h.filters)
            for h in restore_root.handlers
        )
        assert log_file.parent.is_dir()

    def test_setup_from_config(self, restore_root):
        setup_logging_from_config(LoggingConfig(level="WARNING"))
        assert restore_root.level == logging.WARNING
        assert len(restore_root.handlers) == 1
        assert isinstance(restore_root.handlers[0].formatter, _HumanFormatter)
