# src/refscrub/observability.py
"""
Wide event logging for request execution.

Following the "Logging Sucks" philosophy of wide events: one comprehensive
event per logical request with high cardinality and high dimensionality,
instead of scattered log lines per attempt.

Usage:
    event = RequestExecuteEvent(method="POST", url="https://example.com/ews")
    # ... populate event fields during execute() ...
    emit_event(event)
"""

import json
import random
import secrets
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

# Requests slower than this are always kept by the sampler
SLOW_REQUEST_THRESHOLD_MS = 10000


def generate_request_id() -> str:
    """Generate a unique request ID for tracing."""
    return secrets.token_hex(8)


@dataclass
class RequestExecuteEvent:
    """
    Canonical log line for one logical request.

    Emitted once per execute() call, covering both the primary attempt and
    the sanitized retry when there is one.
    """

    # Identifiers (high cardinality)
    event_type: str = field(default="request_execute", init=False)
    request_id: str = ""
    method: str = ""
    url: str = ""
    url_domain: str = ""

    # Timing
    timestamp: str = ""
    wall_time_ms: float = 0

    # Attempts
    attempts: int = 0
    retried: bool = False
    sanitized: bool = False
    references_removed: int = 0

    # HTTP details
    http_status: int | None = None

    # Outcome
    outcome: str = "success"  # "success" | "error"
    error_type: str | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        """Set derived fields after initialization."""
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        if not self.request_id:
            self.request_id = generate_request_id()
        if self.url and not self.url_domain:
            try:
                self.url_domain = urlparse(self.url).netloc
            except ValueError:
                self.url_domain = ""


def should_sample(event: dict[str, Any], sample_rate: float = 0.10) -> bool:
    """
    Tail sampling strategy for high-traffic deployments.

    Always keep:
    - Errors (100%)
    - Retried requests (the sanitizer was needed)
    - Slow requests

    Sample:
    - Successful, fast, first-attempt requests (default 10%)
    """
    if event.get("outcome") == "error":
        return True

    if event.get("retried"):
        return True

    if event.get("wall_time_ms", 0) > SLOW_REQUEST_THRESHOLD_MS:
        return True

    return random.random() < sample_rate


def emit_event(
    event: RequestExecuteEvent | dict[str, Any],
    sample_rate: float = 0.10,
    force: bool = False,
) -> bool:
    """
    Emit an event with optional tail sampling.

    Args:
        event: The event to emit (dataclass or dict)
        sample_rate: Sampling rate for successful fast operations
        force: If True, skip sampling and always emit

    Returns:
        True if event was emitted, False if dropped by sampling
    """
    event_dict = event if isinstance(event, dict) else asdict(event)

    if force or should_sample(event_dict, sample_rate):
        print(json.dumps(event_dict))
        return True
    return False


class Timer:
    """Context manager for timing operations."""

    def __init__(self) -> None:
        self.start_time: float = 0
        self.end_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.end_time = time.perf_counter()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def elapsed(self) -> float:
        """Return elapsed time in milliseconds."""
        if self.end_time:
            return self.elapsed_ms
        return (time.perf_counter() - self.start_time) * 1000
