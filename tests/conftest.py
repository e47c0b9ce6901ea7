"""
Pytest configuration and shared fixtures for nostryears tests.

Provides:
- Logging configuration for the test session
- Nostr fixtures (event factory, snapshot records, in-memory relay source)
  registered from ``fixtures.nostr``
"""

import logging

import pytest


pytest_plugins = ["fixtures.nostr"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)
