"""Unit tests for the JSON log formatter."""
import json
import logging
import sys

from docqa.logger import JSONFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord(
        name="docqa.services.llm_client",
        level=logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg="Generation failed for %s",
        args=("llama",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_basic_fields():
    data = json.loads(JSONFormatter().format(make_record()))

    assert data["level"] == "ERROR"
    assert data["logger"] == "docqa.services.llm_client"
    assert data["message"] == "Generation failed for llama"
    assert data["timestamp"].endswith("Z")
    assert "exception" not in data


def test_includes_extra_fields():
    record = make_record(error_code="TIMEOUT_ERROR", error_details={"model": "llama"})

    data = json.loads(JSONFormatter().format(record))

    assert data["error_code"] == "TIMEOUT_ERROR"
    assert data["error_details"] == {"model": "llama"}
    assert "pathname" not in data


def test_includes_exception_text():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record()
        record.exc_info = sys.exc_info()

    data = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in data["exception"]


def test_setup_logging_installs_handler():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging("INFO", "json")
        added = [h for h in root.handlers if h not in before]
        assert len(added) == 1
        assert isinstance(added[0].formatter, JSONFormatter)
        assert root.level == logging.INFO
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
