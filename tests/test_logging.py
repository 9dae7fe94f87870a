"""Tests for logging configuration."""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from jobinsight.config import Environment, Settings
from jobinsight.logging_config import (
    DevFormatter,
    JSONFormatter,
    get_logger,
    setup_logging,
)


def _record(
    msg: str = "Test message",
    level: int = logging.INFO,
    exc_info: object = None,
    **extra: object,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="jobinsight.scraping",
        level=level,
        pathname="/app/orchestrator.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,  # type: ignore[arg-type]
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_format_basic_message(self) -> None:
        """Basic log message is formatted as JSON."""
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "jobinsight.scraping"
        assert data["message"] == "Test message"
        assert data["file"] == "/app/orchestrator.py:42"
        assert "timestamp" in data

    def test_extra_fields_included(self) -> None:
        """Context passed through extra= is kept under 'extra'."""
        record = _record(keywords="python", location="Austin", attempt=2)

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"] == {"keywords": "python", "location": "Austin", "attempt": 2}

    def test_no_extra_key_without_context(self) -> None:
        """Standard record attributes are not reported as extra."""
        data = json.loads(JSONFormatter().format(_record()))
        assert "extra" not in data

    def test_unserializable_extra_uses_str(self) -> None:
        """Values json cannot encode are rendered with str()."""
        record = _record(stage=Environment.PRODUCTION, obj=object())

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"]["stage"] == "production"
        assert data["extra"]["obj"].startswith("<object object")

    def test_format_with_exception(self) -> None:
        """Exception info is included in output."""
        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(
            JSONFormatter().format(_record("Error", logging.ERROR, exc_info=exc_info))
        )

        assert "ValueError" in data["exception"]


class TestDevFormatter:
    """Tests for development formatter."""

    def test_format_includes_level(self) -> None:
        """Development format includes level, logger and message."""
        output = DevFormatter().format(_record("Navigation failed", logging.WARNING))

        assert "WARNING" in output
        assert "jobinsight.scraping" in output
        assert "Navigation failed" in output


class TestSetupLogging:
    """Tests for logging setup."""

    def test_returns_root_logger(self) -> None:
        """setup_logging returns root logger."""
        assert setup_logging(level="INFO", json_output=False) is logging.getLogger()

    @pytest.mark.parametrize(
        ("environment", "formatter"),
        [
            (Environment.PRODUCTION, JSONFormatter),
            (Environment.STAGING, JSONFormatter),
            (Environment.DEVELOPMENT, DevFormatter),
        ],
    )
    def test_formatter_follows_environment(
        self,
        environment: Environment,
        formatter: type[logging.Formatter],
    ) -> None:
        """JSON outside development, readable output in development."""
        mock_settings = Settings(environment=environment)

        with patch("jobinsight.logging_config.get_settings", return_value=mock_settings):
            setup_logging()

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, formatter)

    def test_level_override(self) -> None:
        """Log level can be overridden."""
        setup_logging(level="DEBUG", json_output=False)
        assert logging.getLogger().level == logging.DEBUG

    def test_json_output_override(self) -> None:
        """JSON output can be forced."""
        mock_settings = Settings(environment=Environment.DEVELOPMENT)

        with patch("jobinsight.logging_config.get_settings", return_value=mock_settings):
            setup_logging(json_output=True)

        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_third_party_loggers_quieted(self) -> None:
        """Client library loggers only report warnings."""
        setup_logging(level="DEBUG", json_output=False)

        for name in ("httpx", "playwright", "qdrant_client"):
            assert logging.getLogger(name).level == logging.WARNING


class TestGetLogger:
    """Tests for named logger retrieval."""

    def test_returns_named_logger(self) -> None:
        """get_logger returns a logger with the given name."""
        assert get_logger("jobinsight.pipeline").name == "jobinsight.pipeline"

    def test_child_inherits_root_level(self) -> None:
        """Module loggers inherit the configured level."""
        setup_logging(level="WARNING", json_output=False)
        assert get_logger("jobinsight.vectorstore.client").getEffectiveLevel() == logging.WARNING
