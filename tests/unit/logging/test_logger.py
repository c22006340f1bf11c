# tests/unit/logging/test_logger.py — v1
"""Tests for logging/logger.py — logger setup and formatters."""

from __future__ import annotations

import json
import logging

from tourflow.logging.context import log_context
from tourflow.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    setup_logging,
)


def _record(msg: str = "Hello", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )


class TestJsonFormatter:
    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        with log_context(pipeline_id="pipe1", step="step2"):
            parsed = json.loads(JsonFormatter().format(_record("test msg")))
        assert parsed["context"] == {"pipeline_id": "pipe1", "step": "step2"}

    def test_format_with_data(self):
        record = _record()
        record.data = {"attempt": 2}
        parsed = json.loads(JsonFormatter().format(record))
        assert parsed["data"] == {"attempt": 2}


class TestTextFormatter:
    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        with log_context(pipeline_id="pipe1", job_id="job7", step="step3"):
            output = TextFormatter().format(_record())
        assert "[pipe1]" in output
        assert "[job job7]" in output
        assert "(step3)" in output


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger(ROOT_LOGGER)
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()
        root.setLevel(logging.NOTSET)

    def test_setup_json(self):
        root = setup_logging(level="DEBUG", log_format="json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text(self):
        root = setup_logging(level="INFO", log_format="text")
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_reinit_does_not_duplicate(self):
        setup_logging()
        root = setup_logging()
        assert len(root.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "tourflow.log"
        root = setup_logging(log_file=log_file, rotation="1MB", retention=2)
        assert len(root.handlers) == 2
        logging.getLogger("tourflow.test").warning("to file")
        for handler in root.handlers:
            handler.flush()
        assert "to file" in log_file.read_text(encoding="utf-8")
