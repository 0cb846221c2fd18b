# tests/unit/test_utils.py
"""Tests for the structured logging helpers."""

import json
import logging

from freezegun import freeze_time

from refscrub.utils import (
    ERROR_MESSAGE_MAX_LENGTH,
    get_iso_timestamp,
    log_debug,
    log_error,
    log_op,
    truncate_error,
)


def _payloads(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records]


class TestGetIsoTimestamp:
    @freeze_time("2026-03-04 05:06:07")
    def test_uses_z_suffix(self):
        assert get_iso_timestamp() == "2026-03-04T05:06:07Z"


class TestTruncateError:
    def test_short_message_unchanged(self):
        assert truncate_error("boom") == "boom"

    def test_long_message_gets_ellipsis(self):
        result = truncate_error("x" * 500)
        assert len(result) == ERROR_MESSAGE_MAX_LENGTH
        assert result.endswith("...")

    def test_accepts_exceptions(self):
        assert truncate_error(ValueError("bad value"), max_length=5) == "ba..."


class TestLogOp:
    @freeze_time("2026-01-01 00:00:00")
    def test_logs_structured_json(self, refscrub_caplog):
        log_op("request_retry_sanitized", url="https://example.com", attempts=2)

        (payload,) = _payloads(refscrub_caplog)
        assert payload == {
            "event_type": "request_retry_sanitized",
            "timestamp": "2026-01-01T00:00:00Z",
            "url": "https://example.com",
            "attempts": 2,
        }
        assert refscrub_caplog.records[0].levelno == logging.INFO

    def test_non_json_values_are_stringified(self, refscrub_caplog):
        log_op("custom", value=object())
        assert isinstance(_payloads(refscrub_caplog)[0]["value"], str)


class TestLogDebug:
    def test_logged_when_debug_enabled(self, refscrub_caplog):
        log_debug("charref_removed", reference="&#0;")
        (record,) = refscrub_caplog.records
        assert record.levelno == logging.DEBUG
        assert json.loads(record.getMessage())["reference"] == "&#0;"

    def test_skipped_at_info(self, caplog):
        caplog.set_level(logging.INFO, logger="refscrub")
        log_debug("charref_removed", reference="&#0;")
        assert caplog.records == []


class TestLogError:
    def test_includes_exception_details(self, refscrub_caplog):
        log_error("request_failed", OSError("connection reset"), url="https://example.com")

        (record,) = refscrub_caplog.records
        payload = json.loads(record.getMessage())
        assert record.levelno == logging.ERROR
        assert payload["error_type"] == "OSError"
        assert payload["error"] == "connection reset"
        assert payload["url"] == "https://example.com"
