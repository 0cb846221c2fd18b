"""refscrub - strip illegal XML character references from response streams."""

from refscrub.config import EnvironConfig
from refscrub.errors import RequestFailedError, ResponseReadError, XmlFormatError
from refscrub.parsers import ElementTreeParser, FeedParser, ResponseParser
from refscrub.request import AsyncExecutor, AsyncRequestResult, SimpleServiceRequest
from refscrub.transport import HttpTransport, ResponseStream
from refscrub.xml_sanitizer import CharRefSanitizingStream, is_legal_xml10_char, sanitize_bytes

__all__ = [
    "AsyncExecutor",
    "AsyncRequestResult",
    "CharRefSanitizingStream",
    "ElementTreeParser",
    "EnvironConfig",
    "FeedParser",
    "HttpTransport",
    "RequestFailedError",
    "ResponseParser",
    "ResponseReadError",
    "ResponseStream",
    "SimpleServiceRequest",
    "XmlFormatError",
    "is_legal_xml10_char",
    "sanitize_bytes",
]
