"""
Tests: log formatters and LOG_FORMAT selection.
"""

import json
import logging
import sys

import pytest

from ffe_tracker.middleware.logging_config import JSONFormatter, TextFormatter, configure_logging


def _record(msg="Applied logic option", **extra):
    record = logging.LogRecord(
        "ffe_tracker.services.logic_expansion", logging.INFO, __file__, 1, msg, None, None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_lifts_request_context():
    record = _record(request_id="9f3a", room_id="R-101", status=201, duration_ms=12.5, actor=None)

    entry = json.loads(JSONFormatter().format(record))

    assert entry["msg"] == "Applied logic option"
    assert entry["level"] == "INFO"
    assert (entry["room_id"], entry["status"], entry["duration_ms"]) == ("R-101", 201, 12.5)
    assert "actor" not in entry


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()
    entry = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in entry["exc"]


def test_text_formatter_tags_room_and_request():
    line = TextFormatter().format(_record(room_id="R-101", request_id="9f3a"))
    assert line.endswith("ffe_tracker.services.logic_expansion: Applied logic option [room=R-101 req=9f3a]")

    assert TextFormatter().format(_record()).endswith(": Applied logic option")


def test_unknown_log_format_is_rejected():
    class _App:
        config = {"LOG_FORMAT": "xml"}

    with pytest.raises(ValueError):
        configure_logging(_App())