"""Tests for structured logging configuration."""

import json
import logging
from collections.abc import Iterator
from typing import Any

import pytest
import structlog

from daemon_registry.observability.logging import (
    REDACTED_PLACEHOLDER,
    LogSettings,
    configure_logging,
    get_logger,
    redact_sensitive,
    request_context,
    sanitize_for_logging,
)
from daemon_registry.registry.facade import DaemonRegistry
from daemon_registry.transport.server import RegistryRpcHandler


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def json_lines(text: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


class TestLogSettings:
    """Tests for LogSettings.from_env."""

    def test_defaults(self) -> None:
        settings = LogSettings.from_env({})
        assert settings == LogSettings("console", "INFO", "daemon-registry")
        assert settings.level == logging.INFO

    def test_reads_environment(self) -> None:
        settings = LogSettings.from_env(
            {
                "DAEMON_REGISTRY_LOG_FORMAT": " JSON ",
                "DAEMON_REGISTRY_LOG_LEVEL": "debug",
                "DAEMON_REGISTRY_SERVICE_NAME": "registry-eu",
            }
        )
        assert settings.log_format == "json"
        assert settings.level == logging.DEBUG
        assert settings.service_name == "registry-eu"

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert LogSettings(log_level="CHATTY").level == logging.INFO


@pytest.mark.usefixtures("restore_logging")
class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_respects_log_level(self) -> None:
        configure_logging(log_format="console", log_level="WARNING", force=True)
        assert logging.getLogger().level == logging.WARNING

    def test_level_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DAEMON_REGISTRY_LOG_LEVEL", "debug")
        configure_logging(force=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_json_lines_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_format="json", log_level="INFO", service_name="svc", force=True)
        get_logger("daemon_registry.test").info("registry.test.event", daemon_url="u")

        captured = capsys.readouterr()
        assert captured.out == ""
        [line] = json_lines(captured.err)
        assert line["event"] == "registry.test.event"
        assert line["service"] == "svc"
        assert line["daemon_url"] == "u"
        assert line["level"] == "info"

    def test_request_context_is_bound_and_restored(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(log_format="json", log_level="INFO", force=True)
        logger = get_logger("daemon_registry.test")
        with request_context(client_key="203.0.113.7", sweep_minute=17):
            logger.info("registry.test.inside")
        logger.info("registry.test.outside")

        inside, outside = json_lines(capsys.readouterr().err)
        assert inside["client_key"] == "203.0.113.7"
        assert inside["sweep_minute"] == 17
        assert "client_key" not in outside
        assert "client_key" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_tool_calls_log_with_request_context(
        self, registry: DaemonRegistry, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(log_format="json", log_level="DEBUG", force=True)
        handler = RegistryRpcHandler(registry)
        body = {
            "jsonrpc": "2.0",
            "method": "tools/call",
            "id": 1,
            "params": {
                "name": "daemon_registry_search",
                "arguments": {"query": "swift", "api_key": "abc"},
            },
        }

        reply = await handler.dispatch(body, "198.51.100.9")

        assert "result" in reply
        [call] = [
            line
            for line in json_lines(capsys.readouterr().err)
            if line["event"] == "registry.rpc.tool_call"
        ]
        assert call["tool"] == "daemon_registry_search"
        assert call["client_key"] == "198.51.100.9"
        assert call["arguments"] == {"query": "swift", "api_key": REDACTED_PLACEHOLDER}
        assert "tool" not in structlog.contextvars.get_contextvars()


class TestRedaction:
    """Tests for sanitize_for_logging and the redaction processor."""

    def test_redacts_sensitive_keys(self) -> None:
        result = sanitize_for_logging({"owner": "Ada", "api_key": "abc", "Authorization": "x"})
        assert result == {
            "owner": "Ada",
            "api_key": REDACTED_PLACEHOLDER,
            "Authorization": REDACTED_PLACEHOLDER,
        }

    def test_nested_values(self) -> None:
        result = sanitize_for_logging(
            {"meta": {"password": "p"}, "items": [{"token": "t"}, "plain", [{"secret": 1}]]}
        )
        assert result == {
            "meta": {"password": REDACTED_PLACEHOLDER},
            "items": [{"token": REDACTED_PLACEHOLDER}, "plain", [{"secret": REDACTED_PLACEHOLDER}]],
        }

    def test_does_not_mutate_input(self) -> None:
        data = {"secret": "s"}
        sanitize_for_logging(data)
        assert data == {"secret": "s"}

    def test_processor_keeps_structural_fields(self) -> None:
        event = {
            "event": "registry.store.read_failed",
            "key": "rate_limit:203.0.113.7",
            "client_key": "203.0.113.7",
            "auth_header": "Bearer x",
            "arguments": {"token": "t", "url": "https://x.example.com/"},
        }
        assert redact_sensitive(None, "info", event) == {
            "event": "registry.store.read_failed",
            "key": "rate_limit:203.0.113.7",
            "client_key": "203.0.113.7",
            "auth_header": REDACTED_PLACEHOLDER,
            "arguments": {"token": REDACTED_PLACEHOLDER, "url": "https://x.example.com/"},
        }

    def test_debug_mode_skips_redaction(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DAEMON_REGISTRY_DEBUG", "true")
        event = {"event": "e", "arguments": {"secret": "s"}}
        result = redact_sensitive(None, "debug", event)
        assert result == {"event": "e", "arguments": {"secret": "s"}}
