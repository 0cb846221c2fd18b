# tests/unit/test_errors.py
"""Tests for the error taxonomy."""

from xml.parsers import expat

from refscrub.errors import (
    REQUEST_FAILED_TEMPLATE,
    RefscrubError,
    RequestFailedError,
    ResponseReadError,
    XmlFormatError,
)

BAD_CHAR_REF = expat.errors.codes[expat.errors.XML_ERROR_BAD_CHAR_REF]
NO_ELEMENTS = expat.errors.codes[expat.errors.XML_ERROR_NO_ELEMENTS]


class TestXmlFormatError:
    """Tests for XmlFormatError.is_illegal_character()."""

    def test_structured_code_matches(self):
        """The expat bad-reference code is enough, whatever the message says."""
        error = XmlFormatError("something else entirely", code=BAD_CHAR_REF)
        assert error.is_illegal_character() is True

    def test_other_code_does_not_match(self):
        error = XmlFormatError("no element found: line 1, column 0", code=NO_ELEMENTS)
        assert error.is_illegal_character() is False

    def test_stax_style_message_matches_without_code(self):
        error = XmlFormatError(
            "ParseError at [row,col]:[1,42]\nMessage: Character reference is an invalid XML character."
        )
        assert error.is_illegal_character() is True

    def test_expat_message_matches_without_code(self):
        error = XmlFormatError("<unknown>:1:12: reference to invalid character number")
        assert error.is_illegal_character() is True

    def test_custom_markers(self):
        error = XmlFormatError("bad char data here")
        assert error.is_illegal_character(markers=("bad char data",)) is True
        assert error.is_illegal_character(markers=("ParseError at",)) is False

    def test_no_markers_and_no_code(self):
        assert XmlFormatError("mismatched tag").is_illegal_character(markers=()) is False

    def test_keeps_position(self):
        error = XmlFormatError("oops", code=BAD_CHAR_REF, line=3, column=7)
        assert (error.line, error.column) == (3, 7)
        assert str(error) == "oops"


class TestRequestFailedError:
    """Tests for RequestFailedError."""

    def test_message_uses_template(self):
        error = RequestFailedError("boom")
        assert str(error) == "The request failed. boom"
        assert error.message == "boom"
        assert REQUEST_FAILED_TEMPLATE % "boom" == str(error)

    def test_wrap_uses_original_message(self):
        cause = OSError("connection reset")
        error = RequestFailedError.wrap(cause)
        assert str(error) == "The request failed. connection reset"
        assert error.response_headers is None

    def test_wrap_prefers_message_attribute(self):
        cause = XmlFormatError("mismatched tag: line 1, column 9")
        assert RequestFailedError.wrap(cause).message == "mismatched tag: line 1, column 9"

    def test_copies_response_headers(self):
        headers = {"x-request-id": "abc"}
        error = RequestFailedError.wrap(ValueError("bad"), response_headers=headers)
        headers["x-request-id"] = "changed"
        assert error.response_headers == {"x-request-id": "abc"}

    def test_is_refscrub_error(self):
        assert isinstance(RequestFailedError("x"), RefscrubError)
        assert isinstance(XmlFormatError("x"), RefscrubError)


class TestResponseReadError:
    def test_is_os_error(self):
        assert isinstance(ResponseReadError("reset"), OSError)
