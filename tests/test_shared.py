"""Tests for configuration, errors and logging helpers."""

import logging

import pytest

from localhostify.shared.config import INVALID_ENV, Config, env_number
from localhostify.shared.errors import (
    BindError,
    ConfigurationError,
    LocalHostifyError,
    PortConflictError,
    ProxyMisconfiguredError,
)
from localhostify.shared.logging_config import (
    TRACE,
    ColoredFormatter,
    get_site_logger,
    resolve_level,
    setup_logging,
)


class TestConfig:
    """Environment-driven defaults."""

    def test_defaults_validate(self):
        Config.validate()

    def test_invalid_values_are_all_reported(self, monkeypatch):
        monkeypatch.setattr(Config, "DEFAULT_PORT", 0)
        monkeypatch.setattr(Config, "PROXY_MAX_BODY_SIZE", -1)
        monkeypatch.setattr(Config, "PROXY_CONNECT_TIMEOUT", 60.0)
        with pytest.raises(ConfigurationError) as exc_info:
            Config.validate()
        message = str(exc_info.value)
        assert "DEFAULT_PORT" in message
        assert "PROXY_MAX_BODY_SIZE" in message
        assert "PROXY_CONNECT_TIMEOUT must not exceed" in message

    def test_malformed_number_falls_back_and_is_reported(self, monkeypatch):
        monkeypatch.setenv("LOCALHOSTIFY_TEST_PORT", "eighty")
        try:
            assert env_number("LOCALHOSTIFY_TEST_PORT", 8080) == 8080
            assert INVALID_ENV["LOCALHOSTIFY_TEST_PORT"] == "eighty"
            with pytest.raises(ConfigurationError, match="LOCALHOSTIFY_TEST_PORT must be a number"):
                Config.validate()
        finally:
            INVALID_ENV.pop("LOCALHOSTIFY_TEST_PORT", None)

    def test_numbers_are_parsed(self, monkeypatch):
        monkeypatch.setenv("LOCALHOSTIFY_TEST_TIMEOUT", "2.5")
        monkeypatch.delenv("LOCALHOSTIFY_TEST_UNSET", raising=False)
        assert env_number("LOCALHOSTIFY_TEST_TIMEOUT", 5.0, float) == 2.5
        assert env_number("LOCALHOSTIFY_TEST_UNSET", 7) == 7


class TestErrors:
    """Exception hierarchy and context."""

    def test_hierarchy(self):
        assert issubclass(PortConflictError, ConfigurationError)
        assert issubclass(BindError, LocalHostifyError)
        assert issubclass(ProxyMisconfiguredError, LocalHostifyError)

    def test_bind_error_context(self):
        cause = OSError(98, "Address already in use")
        error = BindError("docs", "0.0.0.0", 8081, cause)
        assert error.cause is cause
        assert "docs" in str(error) and "8081" in str(error)


class TestLogging:
    """Logging helpers."""

    def test_site_logger_name(self):
        assert get_site_logger("frontend").name == "localhostify.site.frontend"

    def test_trace_level(self):
        assert resolve_level("trace") == TRACE
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level("bogus") == logging.INFO
        assert logging.getLevelName(TRACE) == "TRACE"
        assert hasattr(logging.getLogger("localhostify.test"), "trace")

    def test_colored_formatter_wraps_message(self):
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "boom", None, None)
        assert ColoredFormatter("%(message)s").format(record) == "\033[31mboom\033[0m"

    def test_setup_logging_replaces_handlers(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("WARNING", use_colors=False)
            assert len(root.handlers) == 1
            assert type(root.handlers[0].formatter) is logging.Formatter, "no colors when stdout is not a terminal"
            assert root.level == logging.WARNING
            assert logging.getLogger("localhostify").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
            logging.getLogger("localhostify").setLevel(logging.NOTSET)
