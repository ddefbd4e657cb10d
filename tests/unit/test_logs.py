"""
Unit tests for JSON line logging.
"""

import json
import logging
import sys

from balance_ledger.logs import JsonLineFormatter


def _record(msg, args=None, exc_info=None):
    return logging.LogRecord(
        name="balance_ledger.audit",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


def _format(record):
    return json.loads(JsonLineFormatter().format(record))


class TestJsonLineFormatter:
    def test_json_message_fields_are_top_level(self):
        line = _format(_record(json.dumps({"event": "balance_read", "user_id": 7})))

        assert line["event"] == "balance_read"
        assert line["user_id"] == 7
        assert line["logger"] == "balance_ledger.audit"
        assert line["level"] == "INFO"
        assert "message" not in line

    def test_dict_message_fields_are_top_level(self):
        line = _format(_record({"event": "service_started", "service": "ledger"}))

        assert line["event"] == "service_started"
        assert line["service"] == "ledger"

    def test_plain_message_stays_under_message(self):
        line = _format(_record("worker %s booted", args=("w1",)))

        assert line["message"] == "worker w1 booted"
        assert "event" not in line

    def test_non_object_json_stays_under_message(self):
        assert _format(_record("[1, 2]"))["message"] == "[1, 2]"
        assert _format(_record("{not json"))["message"] == "{not json"

    def test_reserved_keys_are_not_overwritten(self):
        line = _format(_record(json.dumps({"event": "x", "level": "custom"})))

        assert line["level"] == "INFO"
        assert line["field_level"] == "custom"

    def test_exception_is_attached(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(json.dumps({"event": "transaction_failed"}), exc_info=sys.exc_info())

        line = _format(record)

        assert line["event"] == "transaction_failed"
        assert "RuntimeError: boom" in line["exc_info"]
