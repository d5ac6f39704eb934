"""
Shared pytest fixtures and configuration for flow-spine tests.

This module provides:
- Settings built from explicit values (no .env or process environment)
- An in-memory NiFi engine with a matching client
- Recording sleep and fake clock so retry and readiness tests never wait

Usage:
    def test_something(fake_nifi, client, sleeper):
        ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure flowspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from flowspine.core.logging import clear_context
from flowspine.nifi.client import RevisionedResourceClient
from flowspine.nifi.models import Credentials
from tests._support import FakeClock, SleepRecorder, make_settings
from tests._support.fake_nifi import FakeNiFi


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in item.name or test_path.name in ("test_runner.py", "test_cli_commands.py"):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def settings():
    return make_settings()


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def fake_nifi() -> FakeNiFi:
    return FakeNiFi()


@pytest.fixture
def client(fake_nifi: FakeNiFi) -> Generator[RevisionedResourceClient, None, None]:
    """Authenticated client talking to ``fake_nifi``."""
    http = fake_nifi.http_client()
    client = RevisionedResourceClient(fake_nifi.api_url, http)
    client.authenticate(Credentials(fake_nifi.username, fake_nifi.password))
    yield client
    http.close()


@pytest.fixture
def dry_client() -> RevisionedResourceClient:
    return RevisionedResourceClient("https://nifi.test:8443/nifi-api", dry_run=True)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> SleepRecorder:
    return SleepRecorder(clock)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo ``configure_logging`` calls made by CLI and logging tests."""
    yield
    clear_context()
    structlog.reset_defaults()
