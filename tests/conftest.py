"""Test configuration."""

import os

# Settings are validated at import time; tests never need a geocoding key
os.environ["TESTING"] = "true"

from typing import List

from pytest import Config

from app.core.logging import configure_logging

pytest_plugins: List[str] = [
    "tests.fixtures.db",
    "tests.fixtures.geocoding",
    "tests.fixtures.api",
]


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    # Configure logging for test environment
    configure_logging(testing=True)
    config.addinivalue_line("markers", "integration: mark test as an integration test")
