"""Test suite for logger configuration."""

import json
import sys

from loguru import logger

from notify_send.monitoring.logger import configure_logger
from notify_send.monitoring.logger import get_formatted_stacktrace
from notify_send.monitoring.logger import process_log_record


class TestLoggerConfiguration:
    """Tests for logger configuration."""

    def test_configure_logger_default(self):
        """Test logger configuration with default settings."""
        # This should not raise an error
        configure_logger()

    def test_configured_sink_writes_extra_as_json(self, capsys):
        """Test log lines carry the bound extra fields serialized on one line."""
        configure_logger(level="DEBUG")
        try:
            logger.info("Recorded send outcome", notification_id="notification-1", status_code=201)
            output = capsys.readouterr().out
        finally:
            # the capsys stream is closed after this test
            logger.remove()

        assert "Recorded send outcome" in output
        assert '"notification_id": "notification-1"' in output
        assert '"status_code": 201' in output


class TestProcessLogRecord:
    """Tests for process_log_record."""

    def test_extra_serialized(self):
        record = {"extra": {"recipient_id": "aad-1"}, "exception": None}

        result = process_log_record(record)

        assert json.loads(result["extra"]) == {"recipient_id": "aad-1"}
        assert result["stacktrace"] == ""

    def test_exception_stacktrace_uses_carriage_returns(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = {"extra": {}, "exception": sys.exc_info()}

        result = process_log_record(record)

        assert "ValueError: boom" in result["stacktrace"]
        assert "\n" not in result["stacktrace"]

    def test_formatted_stacktrace_keeps_newlines_when_asked(self):
        try:
            raise RuntimeError("kept")
        except RuntimeError:
            stacktrace = get_formatted_stacktrace(sys.exc_info(), replace_newline_character_with_carriage_return=False)

        assert "\n" in stacktrace
        assert "RuntimeError: kept" in stacktrace
