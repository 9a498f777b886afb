"""Tests for logging configuration."""

import json
import logging

from fail2rest.core.logging import JSONFormatter, RequestIDFilter, get_logger
from fail2rest.core.request_context import request_id_var


def make_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("fail2rest.test", logging.INFO, __file__, 1, message, None, None)


def test_filter_attaches_current_request_id():
    record = make_record("hello")
    token = request_id_var.set("20260101120000-0123456789abcdef")
    try:
        assert RequestIDFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert record.request_id == "20260101120000-0123456789abcdef"


def test_filter_outside_request():
    record = make_record("hello")

    RequestIDFilter().filter(record)

    assert record.request_id == "-"


def test_json_formatter_escapes_message():
    record = make_record('quote " and\nnewline')
    RequestIDFilter().filter(record)

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == 'quote " and\nnewline'
    assert entry["level"] == "INFO"
    assert entry["logger"] == "fail2rest.test"
    assert entry["request_id"] == "-"


def test_get_logger_prefix():
    assert get_logger("main").name == "fail2rest.main"
