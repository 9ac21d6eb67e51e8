"""Unit tests for src.utils.logging - secret redaction and library log levels."""

from __future__ import annotations

import io
import json
import logging

import structlog

from src.utils.logging import REDACTED, configure_logging, get_logger, redact_secrets


class TestRedactSecrets:
    def test_masks_secret_keys(self) -> None:
        event = {
            "event": "login",
            "authorization": "Bearer abc",
            "password": "pw",
            "pin": "2468",
            "path": "/api/token",
        }
        result = redact_secrets(None, "info", event)
        assert result["authorization"] == REDACTED
        assert result["password"] == REDACTED
        assert result["pin"] == REDACTED
        assert result["path"] == "/api/token"

    def test_empty_values_are_left_alone(self) -> None:
        result = redact_secrets(None, "info", {"event": "x", "token": None})
        assert result["token"] is None


class TestConfigureLogging:
    def test_json_output_is_redacted(self) -> None:
        sink = io.StringIO()
        configure_logging(log_level="INFO", json_output=True, stream=sink)

        structlog.get_logger("test").info("backend_call", authorization="Bearer secret", feed="members")

        line = json.loads(sink.getvalue().strip().splitlines()[-1])
        assert line["event"] == "backend_call"
        assert line["authorization"] == REDACTED
        assert line["feed"] == "members"
        assert "secret" not in sink.getvalue()

    def test_http_libraries_are_quiet_unless_debugging(self) -> None:
        configure_logging(log_level="INFO", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING

        configure_logging(log_level="debug", stream=io.StringIO())
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_level_filters_structlog_events(self) -> None:
        sink = io.StringIO()
        configure_logging(log_level="WARNING", json_output=True, stream=sink)

        log = get_logger("test.level")
        log.info("hidden")
        log.warning("shown")

        assert "hidden" not in sink.getvalue()
        assert "shown" in sink.getvalue()
