# src/refscrub/utils.py
"""Utility functions for refscrub.

Standalone helpers for structured logging and error formatting. These have
no dependencies on the sanitizer or the request executor.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

# =============================================================================
# Type Aliases
# =============================================================================

#: Logging kwargs - intentionally accepts any JSON-serializable values
LogKwargs = Any

# =============================================================================
# Constants
# =============================================================================

# Standardized error message truncation length
ERROR_MESSAGE_MAX_LENGTH = 200

# =============================================================================
# Structured Logging
# =============================================================================

_logger = logging.getLogger("refscrub")
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)
    # Note: propagate defaults to True, needed for test caplog capture


def get_iso_timestamp() -> str:
    """Get current UTC time as ISO string with Z suffix (RFC3339)."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _build_event(event_type: str, **kwargs: LogKwargs) -> str:
    event = {
        "event_type": event_type,
        "timestamp": get_iso_timestamp(),
        **kwargs,
    }
    return json.dumps(event, default=str)


def log_op(event_type: str, **kwargs: LogKwargs) -> None:
    """Log an operational event as structured JSON.

    Unlike wide events (RequestExecuteEvent), these are simpler operational
    logs for debugging and monitoring internal operations.
    """
    _logger.info(_build_event(event_type, **kwargs))


def log_debug(event_type: str, **kwargs: LogKwargs) -> None:
    """Log a high-volume operational event at DEBUG level.

    The JSON payload is only built when DEBUG is enabled for the logger.
    """
    if _logger.isEnabledFor(logging.DEBUG):
        _logger.debug(_build_event(event_type, **kwargs))


def truncate_error(error: str | Exception, max_length: int = ERROR_MESSAGE_MAX_LENGTH) -> str:
    """Truncate error message with indicator if needed.

    Unlike plain slicing, this adds an ellipsis indicator when truncation occurs,
    making it clear to readers that the message was cut off.
    """
    error_str = str(error)
    if len(error_str) <= max_length:
        return error_str
    return error_str[: max_length - 3] + "..."


def log_error(event_type: str, exception: BaseException, **kwargs: LogKwargs) -> None:
    """Log an error event with standardized exception formatting.

    Uses logger.error() level for error events, making them easily
    distinguishable from info-level operational logs.
    """
    _logger.error(
        _build_event(
            event_type,
            error_type=type(exception).__name__,
            error=truncate_error(exception),
            **kwargs,
        )
    )
