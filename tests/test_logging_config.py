"""Tests for logging context and formatters."""

import json
import logging

from core.logging_config import (
    JSONFormatter,
    LogContext,
    TextFormatter,
    clear_context,
    current_job_id,
    current_table,
    generate_request_id,
    set_context,
    setup_logging,
)


def _record(message="hello"):
    return logging.LogRecord("services.jobs", logging.INFO, __file__, 1, message, None, None)


class TestLogContext:
    """Context variables for correlation."""

    def test_context_manager_restores(self):
        """Values are reset on exit."""
        with LogContext(table="jobs_raw", job_id="J-1"):
            assert current_table.get() == "jobs_raw"
            assert current_job_id.get() == "J-1"
        assert current_table.get() == ""
        assert current_job_id.get() == ""

    def test_set_and_clear(self):
        """set_context / clear_context round trip."""
        set_context(job_id="J-2")
        assert current_job_id.get() == "J-2"
        clear_context()
        assert current_job_id.get() == ""

    def test_request_id_shape(self):
        """Request ids are prefixed and unique."""
        first, second = generate_request_id(), generate_request_id()
        assert first.startswith("req_")
        assert first != second


class TestFormatters:
    """JSON and text formatters include context fields."""

    def test_json_includes_context(self):
        """JSON lines carry table and job id."""
        with LogContext(table="jobs_raw", job_id="J-3"):
            data = json.loads(JSONFormatter().format(_record("작업 생성")))
        assert data["message"] == "작업 생성"
        assert data["table"] == "jobs_raw"
        assert data["job_id"] == "J-3"
        assert "vendor_id" not in data

    def test_text_includes_context(self):
        """Text lines carry a bracketed context."""
        with LogContext(vendor_id="V1"):
            line = TextFormatter().format(_record())
        assert "[vendor=V1]" in line
        assert line.endswith("services.jobs [vendor=V1]: hello")


class TestSetupLogging:
    """setup_logging() handler wiring."""

    def test_json_handler(self):
        """A named logger gets one JSON handler and stops propagating."""
        logger = setup_logging(level="debug", format_type="json", logger_name="print_order_test")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.propagate is False

    def test_reconfigure_replaces_handler(self):
        """Calling again swaps the formatter instead of stacking handlers."""
        setup_logging(format_type="json", logger_name="print_order_test")
        logger = setup_logging(level="WARNING", format_type="text", logger_name="print_order_test")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, TextFormatter)
        assert logger.level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        """Unrecognised levels fall back to INFO."""
        logger = setup_logging(level="chatty", logger_name="print_order_test")
        assert logger.level == logging.INFO
