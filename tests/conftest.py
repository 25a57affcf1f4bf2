"""
Shared fixtures for RSS Webhook tests.

Provides common test fixtures for use across all test modules.
"""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from rss_webhook.config import AppConfig, TargetConfig
from rss_webhook.links import hash_link
from rss_webhook.models import ExtractedItem
from rss_webhook.storage import Storage


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path(fixtures_dir: Path) -> Path:
    """Return path to sample config file."""
    return fixtures_dir / "sample_config.yaml"


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> bytes:
    """Return contents of sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_bytes()


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> bytes:
    """Return contents of sample Atom feed."""
    return (fixtures_dir / "sample_atom.xml").read_bytes()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Return a clock that only moves when told to."""
    return FakeClock()


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Return a sleep replacement that records delays without waiting."""
    return AsyncMock(return_value=None)


@pytest.fixture
def sample_item() -> ExtractedItem:
    """
    Create a sample extracted item for testing.

    Returns
    -------
    ExtractedItem
        An item with a real link hash.
    """
    link = "https://example.com/articles/42"
    return ExtractedItem(
        id="article-42",
        title="Test Article",
        link=link,
        link_hash=hash_link(link),
    )


@pytest.fixture
def test_target() -> TargetConfig:
    """Create a minimal valid target."""
    return TargetConfig(
        name="Test Feed",
        feed_url="https://example.com/feed.xml",
        webhook_url="https://discord.example/api/webhooks/1/abc",
    )


@pytest.fixture
def minimal_config_dict() -> dict[str, Any]:
    """
    Create a minimal valid configuration dictionary.

    Returns
    -------
    dict
        Configuration dictionary that can be used to create AppConfig.
    """
    return {
        "targets": [
            {
                "name": "Test Feed",
                "feed_url": "https://example.com/feed.xml",
                "webhook_url": "https://discord.example/api/webhooks/1/abc",
            }
        ],
    }


@pytest.fixture
def minimal_app_config(minimal_config_dict: dict[str, Any]) -> AppConfig:
    """Create a minimal valid app configuration."""
    return AppConfig.model_validate(minimal_config_dict)


@pytest_asyncio.fixture
async def in_memory_storage(fake_clock: FakeClock) -> AsyncGenerator[Storage, None]:
    """
    Create an in-memory SQLite storage for testing.

    Yields
    ------
    Storage
        An initialized in-memory storage instance driven by ``fake_clock``.
    """
    storage = Storage(":memory:", clock=fake_clock)
    await storage.initialize()
    yield storage
    await storage.close()
