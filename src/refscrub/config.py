# src/refscrub/config.py
"""Configuration management for refscrub.

Environment-based configuration with type-safe getters and defaults.
These functions take an env object and return configuration values.
"""

import os
from typing import Any

from refscrub.utils import log_op

# =============================================================================
# Constants
# =============================================================================

# Timeouts
HTTP_TIMEOUT_SECONDS = 30  # HTTP request timeout

# User agent for outbound requests
USER_AGENT = "refscrub/1.0 (+https://github.com/refscrub/refscrub)"

# Character reference scanning
# Longest candidate that can still name a code point:
# "&#" + 7 decimal digits + ";" or "&#x" + 6 hex digits + ";"
MAX_CANDIDATE_LENGTH = 10
MAX_CODE_POINT = 1114111

# Parser diagnostics that identify invalid character data.
# "ParseError at" is what StAX-style parsers prefix position errors with;
# expat reports bad references as "reference to invalid character number".
DEFAULT_ILLEGAL_CHARACTER_MARKERS: tuple[str, ...] = (
    "ParseError at",
    "reference to invalid character number",
)

# Observability
DEFAULT_EVENT_SAMPLE_RATE = 0.10

_TRUTHY = ("1", "true", "yes", "on")


class EnvironConfig:
    """Expose os.environ as an attribute-style env object.

    Missing variables read as None, which makes every getter fall back to
    its default.
    """

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def __getattr__(self, name: str) -> str | None:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._environ.get(name)


# =============================================================================
# Configuration Getters
# =============================================================================


def get_config_value(
    env: Any,
    env_key: str,
    default: int | float,
    value_type: type[int] | type[float] = int,
) -> int | float:
    """Get a configuration value from environment with type conversion.

    Args:
        env: The environment object (attributes are config keys)
        env_key: The environment variable name
        default: Default value if not set or on error
        value_type: Type to convert to (int or float)

    Returns:
        The configured value or default.
    """
    try:
        value = getattr(env, env_key, None)
        return value_type(value) if value else default
    except (ValueError, TypeError) as e:
        log_op(
            "config_validation_error",
            config_key=env_key,
            error=str(e),
        )
        return default


def get_bool_config(env: Any, env_key: str, default: bool) -> bool:
    """Get a boolean flag; accepts 1/true/yes/on (case-insensitive)."""
    value = getattr(env, env_key, None)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def get_http_timeout(env: Any) -> int:
    """Get HTTP request timeout in seconds."""
    return int(get_config_value(env, "HTTP_TIMEOUT", HTTP_TIMEOUT_SECONDS))


def get_user_agent(env: Any) -> str:
    """Get the User-Agent header sent with every request."""
    return getattr(env, "USER_AGENT", None) or USER_AGENT


def get_illegal_character_markers(env: Any) -> tuple[str, ...]:
    """Get the parser diagnostic substrings that trigger a sanitized retry.

    ILLEGAL_CHARACTER_MARKERS is a comma-separated list; blank entries are
    ignored and an empty list falls back to the defaults.
    """
    raw = getattr(env, "ILLEGAL_CHARACTER_MARKERS", None)
    if not raw:
        return DEFAULT_ILLEGAL_CHARACTER_MARKERS
    markers = tuple(part.strip() for part in str(raw).split(",") if part.strip())
    return markers or DEFAULT_ILLEGAL_CHARACTER_MARKERS


def get_trace_response_headers(env: Any) -> bool:
    """Whether response headers are logged when a request fails."""
    return get_bool_config(env, "TRACE_RESPONSE_HEADERS", False)


def get_event_sample_rate(env: Any) -> float:
    """Get the sampling rate for successful request events."""
    rate = float(
        get_config_value(env, "EVENT_SAMPLE_RATE", DEFAULT_EVENT_SAMPLE_RATE, float)
    )
    if not 0.0 <= rate <= 1.0:
        log_op("config_validation_error", config_key="EVENT_SAMPLE_RATE", error="out of range")
        return DEFAULT_EVENT_SAMPLE_RATE
    return rate
