# src/refscrub/xml_sanitizer.py
"""Streaming removal of illegal XML numeric character references.

Some servers pass user content through verbatim, so a response can carry
references such as ``&#0;`` or ``&#x1;`` that no conforming XML parser
accepts. CharRefSanitizingStream wraps the raw response body and elides
those references on the fly while keeping the read contract of a raw
binary stream, so it can be dropped in wherever the body was consumed.

XML 1.0 legal characters, as checked here:
  #x9 | #xA | #xD | [32-55295] | [57344-65533] | [10000-1114111]

The last range is kept exactly as deployed (the XML 1.0 text reads
[#x10000-#x10FFFF]); output must stay byte-compatible with earlier
responses.

Only references are touched. Literal control bytes, named entities and
anything malformed pass through unchanged.
"""

import errno
import io
from collections import deque
from typing import Any, Protocol

from refscrub.config import MAX_CANDIDATE_LENGTH, MAX_CODE_POINT
from refscrub.models import (
    AMPERSAND,
    END_OF_STREAM,
    HASH,
    HEX_MARKER,
    SEMICOLON,
    CandidateToken,
    QueuedByte,
    QueueEntry,
)
from refscrub.utils import log_debug


class ByteSource(Protocol):
    """Anything with read(n) that returns b"" at end of stream.

    A non-blocking source may return None when no data is ready yet; the
    sanitizer surfaces that as BlockingIOError and a later read resumes.
    """

    def read(self, size: int = -1, /) -> bytes | None: ...


def is_legal_xml10_char(num: int) -> bool:
    """Return True if num is a legal XML 1.0 character code point."""
    return (
        num in (9, 10, 13)
        or 32 <= num <= 55295
        or 57344 <= num <= 65533
        or 10000 <= num <= MAX_CODE_POINT
    )


class CharRefSanitizingStream(io.RawIOBase):
    """Raw binary stream that drops illegal ``&#N;`` / ``&#xH;`` references.

    Bytes are pulled from the source one at a time. Whenever the pending
    queue is empty the scanner reads ahead far enough to decide whether the
    next bytes form a character reference; legal references and anything
    that is not a reference stay queued, illegal references are popped off
    the back of the queue and scanning starts over.

    Not safe for concurrent readers. Each response gets its own instance.
    """

    def __init__(self, source: ByteSource) -> None:
        super().__init__()
        self._source = source
        self._queue: deque[QueueEntry] = deque()
        self._pending_error: OSError | None = None
        # Candidate interrupted by a non-blocking source; its bytes stay queued
        self._stalled: CandidateToken | None = None
        self.references_removed = 0

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def _pull(self) -> QueueEntry:
        chunk = self._source.read(1)
        if chunk is None:
            # Non-blocking source with nothing available yet; not end of stream
            raise BlockingIOError(errno.EAGAIN, "source has no data available yet")
        if not chunk:
            return END_OF_STREAM
        return QueuedByte(chunk[0])

    def _read_ahead(self) -> None:
        """Queue the next byte, plus any lookahead a candidate token needs."""
        token = self._stalled or CandidateToken()
        self._stalled = None
        while True:
            try:
                entry = self._pull()
            except BlockingIOError:
                if token.length:
                    self._stalled = token
                raise
            except OSError as e:
                if not self._queue:
                    raise
                # Hand out what was queued; the caller sees the error once
                # the queue drains.
                self._pending_error = e
                return

            self._queue.append(entry)
            if entry is END_OF_STREAM:
                return

            value = entry.value
            token.append(value)
            position = token.length - 1

            if position == 0:
                if value != AMPERSAND:
                    return
                continue
            if position == 1:
                if value != HASH:
                    return
                continue
            if position == 2 and value == HEX_MARKER:
                token.is_hex = True
                continue

            if value == SEMICOLON:
                if not token.digits or self._is_legal(token):
                    return
                self._purge(token)
                token = CandidateToken()
                continue

            if token.is_digit(value) and token.length < MAX_CANDIDATE_LENGTH:
                continue
            return

    def _is_legal(self, token: CandidateToken) -> bool:
        try:
            code_point = token.code_point()
        except (ValueError, OverflowError):
            return False
        return is_legal_xml10_char(code_point)

    def _purge(self, token: CandidateToken) -> None:
        """Drop exactly the token's bytes; they are the newest queue entries."""
        for _ in range(token.length):
            self._queue.pop()
        self.references_removed += 1
        log_debug(
            "charref_removed",
            reference=token.raw.decode("ascii", errors="replace"),
            token_length=token.length,
        )

    # -------------------------------------------------------------------------
    # Read contract
    # -------------------------------------------------------------------------

    def read_byte(self) -> int | None:
        """Return the next sanitized byte, or None at end of stream."""
        if self._stalled is not None:
            self._read_ahead()
        elif not self._queue:
            if self._pending_error is not None:
                error, self._pending_error = self._pending_error, None
                raise error
            self._read_ahead()

        entry = self._queue.popleft()
        if entry is END_OF_STREAM:
            return None
        return entry.value

    def readinto(self, buffer: Any, offset: int = 0, length: int | None = None) -> int:
        """Fill buffer[offset:offset + length] and return the byte count.

        An OSError on the first byte propagates; one after some bytes were
        produced ends this call early with the count so far and is raised by
        the next read instead. BlockingIOError from a non-blocking source is
        not kept: a later read polls the source again, resuming any candidate
        it interrupted. Returns 0 at end of stream.
        """
        if buffer is None:
            raise TypeError("buffer must not be None")
        if length is None:
            length = len(buffer) - offset
        if length == 0:
            return 0
        if offset < 0 or length < 0 or length > len(buffer) - offset:
            raise IndexError(
                f"offset={offset} length={length} out of bounds for buffer of {len(buffer)}"
            )
        if self.closed:
            raise ValueError("I/O operation on closed stream")

        count = 0
        while count < length:
            try:
                value = self.read_byte()
            except BlockingIOError:
                if count == 0:
                    raise
                break
            except OSError as e:
                if count == 0:
                    raise
                # Soft end of stream for this call; the next read raises it.
                self._pending_error = e
                break
            if value is None:
                break
            buffer[offset + count] = value
            count += 1
        return count

    def readable(self) -> bool:
        return True

    def close(self) -> None:
        if not self.closed:
            close_source = getattr(self._source, "close", None)
            if close_source is not None:
                close_source()
        super().close()


def sanitize_bytes(data: bytes) -> bytes:
    """Run data through a fresh sanitizer and return the result."""
    return CharRefSanitizingStream(io.BytesIO(data)).readall()
