"""Tests for structured_output/logging_config.py — formatters, reply IDs, setup."""

import json
import logging

import pytest

from structured_output.logging_config import (
    HumanFormatter,
    JSONFormatter,
    clear_reply_id,
    get_reply_id,
    set_reply_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging state between tests."""
    clear_reply_id()
    yield
    clear_reply_id()
    root = logging.getLogger()
    for handler in root.handlers:
        if hasattr(handler, "baseFilename"):
            handler.close()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _make_record(msg="test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestReplyId:
    def test_default_none(self):
        assert get_reply_id() is None

    def test_set_returns_id(self):
        rid = set_reply_id()
        assert rid is not None
        assert len(rid) == 12

    def test_get_after_set(self):
        set_reply_id("reply-123")
        assert get_reply_id() == "reply-123"

    def test_auto_generated_is_hex(self):
        int(set_reply_id(), 16)

    def test_clear(self):
        set_reply_id("reply-123")
        clear_reply_id()
        assert get_reply_id() is None

    def test_clear_when_unset_is_noop(self):
        clear_reply_id()
        assert get_reply_id() is None


class TestJSONFormatter:
    def test_produces_valid_json(self):
        data = json.loads(JSONFormatter().format(_make_record()))
        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert "timestamp" in data

    def test_sort_keys(self):
        data = json.loads(JSONFormatter().format(_make_record()))
        keys = list(data.keys())
        assert keys == sorted(keys)

    def test_includes_reply_id(self):
        set_reply_id("reply-abc")
        data = json.loads(JSONFormatter().format(_make_record()))
        assert data["reply_id"] == "reply-abc"

    def test_no_reply_id_when_unset(self):
        data = json.loads(JSONFormatter().format(_make_record()))
        assert "reply_id" not in data

    def test_structured_extras(self):
        record = _make_record(structured_type="Step", property="output")
        data = json.loads(JSONFormatter().format(record))
        assert data["structured_type"] == "Step"
        assert data["property"] == "output"

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = _make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestHumanFormatter:
    def test_readable_output(self):
        output = HumanFormatter().format(_make_record())
        assert output == "INFO test.logger: test message"

    def test_includes_reply_id(self):
        set_reply_id("reply-xyz")
        output = HumanFormatter().format(_make_record())
        assert output.startswith("[reply-xyz] ")

    def test_structured_suffix(self):
        output = HumanFormatter().format(_make_record(structured_type="Step", property="output"))
        assert output.endswith("(Step.output)")

    def test_type_only_suffix(self):
        output = HumanFormatter().format(_make_record(structured_type="Step"))
        assert output.endswith("(Step)")


class TestSetupLogging:
    def test_creates_stderr_handler(self):
        setup_logging(level=logging.DEBUG)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG

    def test_defaults_from_config(self, monkeypatch):
        import structured_output.config as config_mod

        monkeypatch.setattr(config_mod, "LOG_LEVEL", logging.ERROR)
        monkeypatch.setattr(config_mod, "LOG_JSON", True)
        monkeypatch.setattr(config_mod, "LOG_FILE", None)
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_creates_file_handler(self, tmp_path):
        setup_logging(level=logging.INFO, log_file=tmp_path / "test.log")
        assert len(logging.getLogger().handlers) == 2

    def test_human_format_by_default(self):
        setup_logging(level=logging.INFO, json_format=False)
        assert isinstance(logging.getLogger().handlers[0].formatter, HumanFormatter)

    def test_log_file_auto_creates_dir(self, tmp_path):
        log_file = tmp_path / "subdir" / "test.log"
        setup_logging(level=logging.INFO, log_file=log_file)
        assert log_file.parent.exists()

    def test_file_handler_always_json(self, tmp_path):
        log_file = tmp_path / "test.log"
        setup_logging(level=logging.DEBUG, log_file=log_file, json_format=False)
        file_handlers = [h for h in logging.getLogger().handlers if hasattr(h, "baseFilename")]
        assert len(file_handlers) == 1
        assert isinstance(file_handlers[0].formatter, JSONFormatter)

    def test_records_reach_file(self, tmp_path):
        log_file = tmp_path / "test.log"
        setup_logging(level=logging.INFO, log_file=log_file)
        set_reply_id("rid-file")
        logging.getLogger("structured_output.test").info(
            "hydrated", extra={"structured_type": "Step"}
        )
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert line["message"] == "hydrated"
        assert line["reply_id"] == "rid-file"
        assert line["structured_type"] == "Step"

    def test_repeat_setup_replaces_handlers(self):
        setup_logging(level=logging.INFO)
        setup_logging(level=logging.INFO)
        assert len(logging.getLogger().handlers) == 1
