"""Tests for logger.py -- setup_logging() and JsonFormatter.

Strategy: mock logging.basicConfig to verify setup_logging passes the right
arguments, since pytest's log capture plugin interferes with real
basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from mdait_sync.logger import JsonFormatter, setup_logging

# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_logs_to_stderr(self, mock_basic):
        setup_logging()

        mock_basic.assert_called_once()
        kwargs = mock_basic.call_args[1]
        handlers = kwargs["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr
        assert kwargs["level"] == logging.INFO

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_log_file_adds_file_handler(self, mock_basic, tmp_path):
        log_file = tmp_path / "sync.log"
        setup_logging(log_file=str(log_file))

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 2
        assert isinstance(handlers[1], logging.FileHandler)
        assert handlers[1].baseFilename == str(log_file)
        handlers[1].close()

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_log_file_from_env(self, mock_basic, tmp_path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("MDAIT_LOG_FILE", str(log_file))
        setup_logging()

        handlers = mock_basic.call_args[1]["handlers"]
        assert handlers[-1].baseFilename == str(log_file)
        handlers[-1].close()

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_debug_overrides_level(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_config_level_used(self, mock_basic):
        setup_logging(level="warning")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_env_level_wins_over_config(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level="DEBUG")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic):
        setup_logging(level="LOUD")
        assert mock_basic.call_args[1]["level"] == logging.INFO

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(debug_format="json")
        handler = mock_basic.call_args[1]["handlers"][0]
        assert isinstance(handler.formatter, JsonFormatter)

    @patch("mdait_sync.logger.logging.basicConfig")
    def test_third_party_silenced(self, mock_basic):
        logging.getLogger("charset_normalizer").setLevel(logging.NOTSET)
        setup_logging()
        assert logging.getLogger("charset_normalizer").level == logging.WARNING


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


class TestJsonFormatter:
    def _record(self, msg: str, exc_info=None) -> logging.LogRecord:
        return logging.LogRecord(
            name="mdait_sync.sync.engine",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )

    def test_fields(self):
        data = json.loads(JsonFormatter().format(self._record("3 conflicts")))
        assert data["level"] == "WARNING"
        assert data["logger"] == "mdait_sync.sync.engine"
        assert data["msg"] == "3 conflicts"
        assert "ts" in data
        assert "exc" not in data

    def test_exception_included(self):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(self._record("failed", exc_info)))
        assert "RuntimeError: disk full" in data["exc"]

    def test_single_line(self):
        output = JsonFormatter().format(self._record("line one\nline two"))
        assert "\n" not in output
