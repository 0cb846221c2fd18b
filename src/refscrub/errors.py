# src/refscrub/errors.py
"""Error taxonomy for refscrub.

I/O failures are plain OSError (the sanitizer relays them unchanged). The
request executor is the only place that classifies failures and wraps
them in RequestFailedError.
"""

from collections.abc import Iterable, Mapping
from xml.parsers import expat

from refscrub.config import DEFAULT_ILLEGAL_CHARACTER_MARKERS

REQUEST_FAILED_TEMPLATE = "The request failed. %s"

# expat error codes raised for invalid character data
ILLEGAL_CHARACTER_ERROR_CODES = frozenset({expat.errors.codes[expat.errors.XML_ERROR_BAD_CHAR_REF]})


class RefscrubError(Exception):
    """Base class for refscrub errors."""


class ResponseReadError(OSError):
    """Reading the response body failed at the transport level."""


class XmlFormatError(RefscrubError):
    """The parser rejected the byte stream as non-well-formed XML."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.line = line
        self.column = column

    def is_illegal_character(
        self, markers: Iterable[str] = DEFAULT_ILLEGAL_CHARACTER_MARKERS
    ) -> bool:
        """Whether this failure was caused by invalid character data.

        Prefers the parser's structured error code. Parsers that only
        report text (SAX, StAX-style) are matched on the marker substrings.
        """
        if self.code is not None and self.code in ILLEGAL_CHARACTER_ERROR_CODES:
            return True
        return any(marker in self.message for marker in markers)


class RequestFailedError(RefscrubError):
    """A request could not be completed; wraps the underlying cause."""

    def __init__(
        self,
        message: str,
        response_headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(REQUEST_FAILED_TEMPLATE % message)
        self.message = message
        self.response_headers = dict(response_headers) if response_headers is not None else None

    @classmethod
    def wrap(
        cls,
        error: BaseException,
        response_headers: Mapping[str, str] | None = None,
    ) -> "RequestFailedError":
        """Build the wrapper for error; the caller raises it `from error`."""
        message = getattr(error, "message", None) or str(error)
        return cls(message, response_headers=response_headers)
