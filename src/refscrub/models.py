# src/refscrub/models.py
"""Type definitions for refscrub."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Final

# =============================================================================
# Pending Byte Queue Entries
# =============================================================================


@dataclass(frozen=True, slots=True)
class QueuedByte:
    """A byte that has been read from the source and validated so far."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFF:
            raise ValueError(f"Byte value out of range: {self.value}")


class EndOfStream:
    """Marker queued once the wrapped source is exhausted. Singleton."""

    _instance: "EndOfStream | None" = None

    def __new__(cls) -> "EndOfStream":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM: Final = EndOfStream()

# An entry is either a byte value or the end marker - never an overloaded int
type QueueEntry = QueuedByte | EndOfStream


# =============================================================================
# Candidate Token
# =============================================================================

AMPERSAND = ord("&")
HASH = ord("#")
HEX_MARKER = ord("x")
SEMICOLON = ord(";")

_DECIMAL_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


@dataclass(slots=True)
class CandidateToken:
    """Bytes collected since the scanner last saw '&'.

    Resolved as legal (kept), illegal (purged) or non-matching (abandoned),
    then discarded.
    """

    raw: bytearray = field(default_factory=bytearray)
    is_hex: bool = False

    @property
    def length(self) -> int:
        return len(self.raw)

    @property
    def base(self) -> int:
        return 16 if self.is_hex else 10

    @property
    def digit_start(self) -> int:
        return 3 if self.is_hex else 2

    @property
    def digits(self) -> bytes:
        """The digit run between the prefix and the closing ';'."""
        end = self.length - 1 if self.raw.endswith(b";") else self.length
        return bytes(self.raw[self.digit_start : end])

    def append(self, value: int) -> None:
        self.raw.append(value)

    def is_digit(self, value: int) -> bool:
        """Whether value is a valid digit for this token's base."""
        return value in (_HEX_DIGITS if self.is_hex else _DECIMAL_DIGITS)

    def code_point(self) -> int:
        """Parse the digit run in the token's base."""
        return int(self.digits.decode("ascii"), self.base)


# =============================================================================
# Request Attempts
# =============================================================================


class AttemptKind(Enum):
    """Which send/parse cycle of a logical request this is."""

    PRIMARY = auto()
    RETRY = auto()


class AttemptOutcome(Enum):
    """Terminal outcome of one send/parse cycle."""

    SUCCESS = auto()
    ILLEGAL_CHARACTER = auto()
    FORMAT_ERROR = auto()
    IO_ERROR = auto()
    OTHER_ERROR = auto()

    def is_retriable(self) -> bool:
        """Return True if this outcome earns the one sanitized retry."""
        return self is AttemptOutcome.ILLEGAL_CHARACTER


@dataclass(slots=True)
class RequestAttempt:
    """One send/parse cycle. At most two are made per logical request."""

    kind: AttemptKind
    response: Any = None
    outcome: AttemptOutcome | None = None
    sanitized: bool = False
    references_removed: int = 0

    @property
    def http_status(self) -> int | None:
        return getattr(self.response, "status_code", None)
