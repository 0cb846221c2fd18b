# tests/mocks/__init__.py
"""
Mock objects for testing refscrub.

These mocks stand in for the network side of a request: byte sources that
misbehave on cue, and a transport that replays canned responses.
"""

from .sources import ChunkedSource, FailingSource, RecordingSource, StallingSource
from .transport import ExplodingStream, FakeTransport

__all__ = [
    "ChunkedSource",
    "ExplodingStream",
    "FailingSource",
    "FakeTransport",
    "RecordingSource",
    "StallingSource",
]
