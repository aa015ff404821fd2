"""Tests for structured logging, request context and routing timers."""

import json
import logging
import sys

import pytest

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import (
    RequestContext,
    generate_request_id,
    get_context_dict,
    get_correlation_id,
    get_request_id,
    get_user_id,
)
from src.logging_config.performance import PerformanceTimer
from src.logging_config.setup import (
    FORMAT_ENV_VAR,
    LEVEL_ENV_VAR,
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def _record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="src.control_plane.router",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="select",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.include_caller is True
        assert config.slow_threshold_ms == 50.0
        assert config.service_name == "ai-control-plane"

    def test_log_format_enum_values(self):
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestRequestContext:
    """Tests for contextvar-backed request binding."""

    def test_generate_request_id_unique(self):
        assert generate_request_id() != generate_request_id()

    def test_context_sets_and_clears(self):
        assert get_request_id() == ""
        with RequestContext(request_id="req-1", user_id="alice"):
            assert get_request_id() == "req-1"
            assert get_correlation_id() == "req-1"
            assert get_user_id() == "alice"
        assert get_request_id() == ""
        assert get_user_id() == ""

    def test_generates_id_when_missing(self):
        ctx = RequestContext()
        assert ctx.request_id
        assert ctx.correlation_id == ctx.request_id

    def test_nested_context_restores_outer(self):
        with RequestContext(request_id="outer", user_id="u1"):
            with RequestContext(request_id="inner", user_id="u2"):
                assert get_request_id() == "inner"
            assert get_request_id() == "outer"
            assert get_user_id() == "u1"

    def test_bind_adds_extra_keys(self):
        with RequestContext(request_id="req-2") as ctx:
            ctx.bind(provider_id="gemini")
            assert get_context_dict()["provider_id"] == "gemini"
            assert ctx.extra == {"provider_id": "gemini"}
        assert "provider_id" not in get_context_dict()

    def test_elapsed_ms_non_negative(self):
        with RequestContext() as ctx:
            assert ctx.elapsed_ms >= 0.0


class TestFormatters:
    """Tests for JSON and console formatters."""

    def test_structured_output_is_json(self):
        out = json.loads(StructuredFormatter(service_name="svc").format(_record()))
        assert out["message"] == "hello"
        assert out["level"] == "INFO"
        assert out["service"] == "svc"
        assert out["function"] == "select"

    def test_structured_without_caller(self):
        out = json.loads(StructuredFormatter(include_caller=False).format(_record()))
        assert "function" not in out

    def test_structured_includes_context(self):
        with RequestContext(request_id="req-9", user_id="bob"):
            out = json.loads(StructuredFormatter().format(_record()))
        assert out["request_id"] == "req-9"
        assert out["user_id"] == "bob"

    def test_structured_includes_extra_fields(self):
        record = _record(provider_id="openai", duration_ms=1.5, threat_level="HIGH")
        out = json.loads(StructuredFormatter().format(record))
        assert out["provider_id"] == "openai"
        assert out["duration_ms"] == 1.5
        assert out["threat_level"] == "HIGH"

    def test_structured_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        out = json.loads(StructuredFormatter().format(record))
        assert out["exception"]["type"] == "ValueError"
        assert out["exception"]["message"] == "boom"

    def test_console_includes_provider(self):
        line = ConsoleFormatter().format(_record(provider_id="claude"))
        assert "hello" in line
        assert "provider_id=claude" in line


class TestConfigureLogging:
    """Tests for root logger setup."""

    @pytest.fixture(autouse=True)
    def _restore_root(self, monkeypatch):
        monkeypatch.delenv(LEVEL_ENV_VAR, raising=False)
        monkeypatch.delenv(FORMAT_ENV_VAR, raising=False)
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_single_json_handler(self):
        config = configure_logging(LoggingConfig(level=LogLevel.DEBUG))
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert root.level == logging.DEBUG
        assert config.level == LogLevel.DEBUG

    def test_console_format(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv(LEVEL_ENV_VAR, "warning")
        monkeypatch.setenv(FORMAT_ENV_VAR, "CONSOLE")
        config = configure_logging()
        assert config.level == LogLevel.WARNING
        assert config.format == LogFormat.CONSOLE
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_env_ignored(self, monkeypatch):
        monkeypatch.setenv(LEVEL_ENV_VAR, "chatty")
        config = configure_logging(LoggingConfig(level=LogLevel.ERROR))
        assert config.level == LogLevel.ERROR

    def test_get_logger(self):
        assert get_logger("src.control_plane").name == "src.control_plane"


class TestPerformanceTimer:
    """Tests for block timing."""

    def test_measures_duration(self):
        with PerformanceTimer("op", threshold_ms=10_000) as timer:
            sum(range(1000))
        assert timer.duration_ms >= 0.0

    def test_fast_run_logs_debug(self, caplog):
        log = logging.getLogger("test.timer.fast")
        with caplog.at_level(logging.DEBUG, logger="test.timer.fast"):
            with PerformanceTimer("routing", threshold_ms=10_000, log=log):
                pass
        assert caplog.records[-1].levelno == logging.DEBUG
        assert "routing" in caplog.records[-1].getMessage()

    def test_slow_run_logs_warning(self, caplog):
        log = logging.getLogger("test.timer.slow")
        with caplog.at_level(logging.DEBUG, logger="test.timer.slow"):
            with PerformanceTimer("routing", threshold_ms=0, log=log):
                pass
        assert caplog.records[-1].levelno == logging.WARNING
        assert hasattr(caplog.records[-1], "duration_ms")

    def test_failure_logs_error_and_propagates(self, caplog):
        log = logging.getLogger("test.timer.fail")
        with caplog.at_level(logging.DEBUG, logger="test.timer.fail"):
            with pytest.raises(RuntimeError):
                with PerformanceTimer("routing", log=log):
                    raise RuntimeError("no provider")
        assert caplog.records[-1].levelno == logging.ERROR
