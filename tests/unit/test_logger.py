"""Tests for structured logging setup."""

import json
import logging

from trade_journal.observability.logger import (
    get_logger,
    get_request_id,
    new_request_id,
    request_scope,
    setup_logging,
)


class TestRequestId:
    def test_scope_binds_and_restores(self):
        outer = get_request_id()
        with request_scope("abc") as rid:
            assert rid == "abc"
            assert get_request_id() == "abc"
        assert get_request_id() == outer

    def test_new_request_id(self):
        with request_scope("x"):
            rid = new_request_id()
            assert rid and rid != "x"
            assert get_request_id() == rid


class TestSetupLogging:
    def test_stdlib_records_rendered_as_json(self, capsys):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        setup_logging("INFO", "json")
        try:
            with request_scope("req-1"):
                logging.getLogger("trade_journal.test").info("hello %s", "world")
            line = capsys.readouterr().err.strip().splitlines()[-1]
            record = json.loads(line)
            assert record["event"] == "hello world"
            assert record["request_id"] == "req-1"
            assert record["level"] == "info"
            assert record["logger"] == "trade_journal.test"
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_get_logger(self):
        assert get_logger("trade_journal") is not None
