"""Tests for structured logging configuration."""

import json
import logging
import sys

import pytest

from roadmap_status.logging_config import (
    JSONFormatter,
    LogContext,
    LogRecord,
    StructuredLogger,
    TextFormatter,
    configure_logging,
    get_logger,
)


def make_record(name="roadmap_status.runner", level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package_level = logging.getLogger("roadmap_status").level
    yield root
    logging.getLogger("roadmap_status").setLevel(package_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestLogRecord:
    """Test LogRecord dataclass."""

    def test_to_dict_with_fields_and_run_id(self):
        record = LogRecord(
            timestamp="2026-01-01T00:00:00Z",
            level="INFO",
            logger="test",
            message="Executed checks",
            fields={"items": 12},
            run_id="abc123def456",
        )
        d = record.to_dict()
        assert d["msg"] == "Executed checks"
        assert d["run_id"] == "abc123def456"
        assert d["items"] == 12

    def test_to_text_truncates_run_id(self):
        record = LogRecord(
            timestamp="2026-01-01 00:00:00",
            level="INFO",
            logger="runner",
            message="Computed status",
            run_id="abc123def456",
        )
        text = record.to_text()
        assert "[abc123de]" in text
        assert "Computed status" in text


class TestFormatters:
    def test_json_basic(self):
        parsed = json.loads(JSONFormatter().format(make_record()))
        assert parsed["level"] == "INFO"
        assert parsed["msg"] == "Test message"
        assert parsed["logger"] == "roadmap_status.runner"
        assert parsed["ts"].endswith("Z")

    def test_json_structured_fields(self):
        record = make_record()
        record.structured_fields = {"weeks": 2, "status": "ok"}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["weeks"] == 2
        assert parsed["status"] == "ok"

    def test_json_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()
        parsed = json.loads(JSONFormatter().format(make_record(level=logging.ERROR, exc_info=exc_info)))
        assert parsed["exception"]["type"] == "ValueError"
        assert "Test error" in parsed["exception"]["message"]

    def test_text_short_logger_name(self):
        output = TextFormatter().format(make_record())
        assert "[INFO]" in output
        assert "[runner]" in output

    def test_context_fields_are_injected(self):
        with LogContext(run_id="run-000001", owner="acme"):
            parsed = json.loads(JSONFormatter().format(make_record()))
            text = TextFormatter().format(make_record())
        assert parsed["run_id"] == "run-000001"
        assert parsed["owner"] == "acme"
        assert "[run-0000]" in text
        assert "owner=acme" in text


class TestLogContext:
    def test_sets_and_clears_fields(self):
        with LogContext(run_id="r1"):
            assert json.loads(JSONFormatter().format(make_record()))["run_id"] == "r1"
        assert "run_id" not in json.loads(JSONFormatter().format(make_record()))

    def test_nested_contexts_merge(self):
        with LogContext(run_id="r1", owner="acme"):
            with LogContext(repo="app", owner="other"):
                inner = json.loads(JSONFormatter().format(make_record()))
            outer = json.loads(JSONFormatter().format(make_record()))
        assert (inner["run_id"], inner["owner"], inner["repo"]) == ("r1", "other", "app")
        assert outer["owner"] == "acme"
        assert "repo" not in outer


class TestStructuredLogger:
    def test_fields_reach_the_record(self, caplog):
        logger = StructuredLogger("roadmap_status.test")
        with caplog.at_level(logging.INFO, logger="roadmap_status.test"):
            logger.info("Executed", checks=3)
        assert caplog.records[-1].structured_fields == {"checks": 3}

    def test_get_logger_caches(self):
        assert get_logger("roadmap_status.a") is get_logger("roadmap_status.a")
        assert get_logger("roadmap_status.a") is not get_logger("roadmap_status.b")


class TestConfigureLogging:
    def test_configure_json(self, restore_root_logger):
        configure_logging(level="DEBUG", json_output=True)
        assert any(isinstance(h.formatter, JSONFormatter) for h in restore_root_logger.handlers)
        assert restore_root_logger.level == logging.DEBUG

    def test_configure_text(self, restore_root_logger):
        configure_logging(level="WARNING", json_output=False)
        assert any(isinstance(h.formatter, TextFormatter) for h in restore_root_logger.handlers)
        assert restore_root_logger.level == logging.WARNING

    def test_log_file(self, restore_root_logger, temp_dir):
        log_path = temp_dir / "status.log"
        configure_logging(level="INFO", json_output=True, log_file=str(log_path))
        logging.getLogger("roadmap_status.test").info("written to file")
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "written to file" in log_path.read_text(encoding="utf-8")
        for handler in restore_root_logger.handlers[:]:
            handler.close()
