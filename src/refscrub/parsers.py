# src/refscrub/parsers.py
"""XML parser collaborators.

A parser takes a readable binary stream and returns a parsed document.
Malformed input is reported as XmlFormatError so the request executor can
decide whether a sanitized retry is worthwhile. I/O failures from the
stream are left to propagate as OSError.
"""

import xml.etree.ElementTree as ET
from typing import Any, BinaryIO, Protocol

import feedparser

from refscrub.errors import XmlFormatError


class ResponseParser[T](Protocol):
    """Protocol for response parsing - enables testing with mocks."""

    def parse(self, stream: BinaryIO) -> T:
        """Parse the stream and return the document."""
        ...


class ElementTreeParser:
    """Parse a response body into an ElementTree root element.

    expat reports its numeric error code on ParseError, which gives the
    executor a structured way to recognise bad character references.
    """

    def parse(self, stream: BinaryIO) -> ET.Element:
        try:
            return ET.parse(stream).getroot()
        except ET.ParseError as e:
            line, column = e.position
            raise XmlFormatError(str(e), code=e.code, line=line, column=column) from e


class FeedParser:
    """Parse an RSS/Atom response body with feedparser.

    feedparser never raises on bad XML; it flags the result as bozo and
    falls back to a lenient parse. Only a bozo result with no entries is
    treated as a format error, the same threshold the feed fetcher uses.
    """

    def parse(self, stream: BinaryIO) -> Any:
        result = feedparser.parse(stream.read())
        exception = result.get("bozo_exception")
        if result.get("bozo") and not result.get("entries") and exception is not None:
            raise XmlFormatError(
                f"Feed parse error: {exception}",
                line=_call_or_none(exception, "getLineNumber"),
                column=_call_or_none(exception, "getColumnNumber"),
            ) from exception
        return result


def _call_or_none(obj: Any, method_name: str) -> int | None:
    """SAX exceptions expose their position through getter methods."""
    method = getattr(obj, method_name, None)
    if method is None:
        return None
    try:
        return method()
    except (AttributeError, TypeError):
        return None
