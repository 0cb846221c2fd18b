# tests/unit/test_models.py
"""Tests for the data model types."""

import pytest

from refscrub.models import (
    END_OF_STREAM,
    AttemptKind,
    AttemptOutcome,
    CandidateToken,
    EndOfStream,
    QueuedByte,
    RequestAttempt,
)


class TestQueueEntries:
    """Tests for QueuedByte and the end-of-stream marker."""

    def test_queued_byte_holds_value(self):
        assert QueuedByte(0).value == 0
        assert QueuedByte(255).value == 255

    @pytest.mark.parametrize("value", [-1, 256])
    def test_queued_byte_rejects_out_of_range(self, value):
        with pytest.raises(ValueError):
            QueuedByte(value)

    def test_queued_byte_is_immutable(self):
        entry = QueuedByte(65)
        with pytest.raises(AttributeError):
            entry.value = 66

    def test_end_of_stream_is_singleton(self):
        assert EndOfStream() is END_OF_STREAM

    def test_end_of_stream_differs_from_every_byte(self):
        assert all(QueuedByte(v) != END_OF_STREAM for v in range(256))


class TestCandidateToken:
    """Tests for CandidateToken."""

    def test_empty_token(self):
        token = CandidateToken()
        assert token.length == 0
        assert token.base == 10
        assert token.digits == b""

    def test_decimal_digits(self):
        token = CandidateToken(raw=bytearray(b"&#123;"))
        assert token.digits == b"123"
        assert token.code_point() == 123

    def test_digits_before_semicolon_arrives(self):
        token = CandidateToken(raw=bytearray(b"&#12"))
        assert token.digits == b"12"

    def test_hex_digits(self):
        token = CandidateToken(raw=bytearray(b"&#x1F;"), is_hex=True)
        assert token.base == 16
        assert token.digits == b"1F"
        assert token.code_point() == 31

    def test_append_grows_token(self):
        token = CandidateToken()
        token.append(ord("&"))
        token.append(ord("#"))
        assert token.length == 2
        assert bytes(token.raw) == b"&#"

    @pytest.mark.parametrize(
        "is_hex,char,expected",
        [
            (False, "7", True),
            (False, "a", False),
            (True, "7", True),
            (True, "a", True),
            (True, "F", True),
            (True, "g", False),
            (True, "x", False),
        ],
    )
    def test_is_digit(self, is_hex, char, expected):
        token = CandidateToken(is_hex=is_hex)
        assert token.is_digit(ord(char)) is expected


class TestRequestAttempt:
    """Tests for RequestAttempt and its enums."""

    def test_only_illegal_character_is_retriable(self):
        retriable = [o for o in AttemptOutcome if o.is_retriable()]
        assert retriable == [AttemptOutcome.ILLEGAL_CHARACTER]

    def test_defaults(self):
        attempt = RequestAttempt(kind=AttemptKind.PRIMARY)
        assert attempt.response is None
        assert attempt.outcome is None
        assert attempt.sanitized is False
        assert attempt.references_removed == 0
        assert attempt.http_status is None

    def test_http_status_from_response(self):
        class _Response:
            status_code = 200

        attempt = RequestAttempt(kind=AttemptKind.RETRY, response=_Response())
        assert attempt.http_status == 200
