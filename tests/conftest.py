"""Shared pytest configuration and fixtures."""

import pytest
from pathlib import Path

from healthmon.config.loader import ConfigLoader
from healthmon.config.models import Target
from healthmon.utils.logger import setup_logger


# Path to the example config shipped with the repository
CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.example.yaml"


@pytest.fixture
def config(monkeypatch):
    """Load the example configuration."""
    if not CONFIG_PATH.exists():
        pytest.skip(f"Config file not found: {CONFIG_PATH}")

    monkeypatch.setenv("STATUS_API_HOST", "status.example.test")
    return ConfigLoader.load_from_file(str(CONFIG_PATH))


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def http_target():
    """HTTP target with a short timeout."""
    return Target(name="web", address="http://service.test/health", timeout_ms=1000)


@pytest.fixture
def tcp_target():
    """TCP target with a short timeout."""
    return Target(name="db", address="127.0.0.1:5432", timeout_ms=500)
