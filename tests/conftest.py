# tests/conftest.py
"""Shared fixtures for refscrub tests."""

import logging

import pytest

# =============================================================================
# Shared Test Constants
# =============================================================================

VALID_XML = b'<?xml version="1.0"?><root><item>A&#9;B</item></root>'
ILLEGAL_REF_XML = b'<?xml version="1.0"?><root><item>A&#0;B</item></root>'
ILLEGAL_HEX_REF_XML = b'<?xml version="1.0"?><root><item>A&#x1F;B</item></root>'
TRUNCATED_XML = b'<?xml version="1.0"?><root><item>unclosed'


class MockEnv:
    """Attribute-style env object; unset keys read as None."""

    def __init__(self, **kwargs):
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __getattr__(self, name):
        return None


@pytest.fixture
def mock_env() -> MockEnv:
    """Env that forces every request event to be emitted."""
    return MockEnv(EVENT_SAMPLE_RATE="1.0")


@pytest.fixture
def refscrub_caplog(caplog):
    """caplog capturing DEBUG and up from the refscrub logger."""
    logger = logging.getLogger("refscrub")
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    caplog.set_level(logging.DEBUG, logger="refscrub")
    yield caplog
    logger.setLevel(previous)
