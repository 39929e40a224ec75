"""
Pytest configuration and shared fixtures for sqlpulse tests.

Provides:
- In-memory parameter and secret stores, a fake PostgreSQL connector and a
  recording metric sink (``tests.fixtures.fakes``)
- Loader and Sampler instances wired to those fakes
"""

import logging

import pytest


pytest_plugins = ["tests.fixtures.fakes"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)
