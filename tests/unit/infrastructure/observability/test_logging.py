"""Tests for structured logging."""

import json
import logging

from addonsync.config import Settings
from addonsync.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    configure_logging_from_settings,
    get_correlation_id,
    set_correlation_id,
)


def _record(msg: str = "hello", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="addonsync.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        result = set_correlation_id("run-123")
        assert result == "run-123"
        assert get_correlation_id() == "run-123"

    def test_set_correlation_id_generates_uuid_when_none(self):
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_adds_correlation_id(self):
        set_correlation_id("run-456")
        record = _record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "run-456"


class TestFormatters:
    """Test the JSON and compact formatters."""

    def test_json_formatter_fields(self):
        set_correlation_id("run-789")
        record = _record("Fetching manifest")
        CorrelationIdFilter().filter(record)

        payload = json.loads(CustomJsonFormatter("%(message)s").format(record))

        assert payload["message"] == "Fetching manifest"
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "addonsync.test"
        assert payload["correlation_id"] == "run-789"

    def test_compact_exception_chain(self):
        try:
            try:
                raise ConnectionError("refused")
            except ConnectionError as e:
                raise RuntimeError("manifest unreachable") from e
        except RuntimeError as e:
            text = CompactExceptionFormatter().formatException((type(e), e, e.__traceback__))

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == [
            "╰─► ConnectionError: refused",
            "╰─► RuntimeError: manifest unreachable",
        ]

    def test_compact_formatter_without_exception(self):
        assert CompactExceptionFormatter().formatException((None, None, None)) == ""


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_json_format(self):
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        root_logger = logging.getLogger()
        assert any(
            isinstance(handler.formatter, CustomJsonFormatter) for handler in root_logger.handlers
        )

    def test_http_noise_is_quieted(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_configure_from_settings(self):
        configure_logging_from_settings(Settings(log_level="WARNING"))
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(log_level="chatty")
        assert logging.getLogger().level == logging.INFO
