"""
Protocol definitions for the processor's collaborators.

FeedProcessor receives its fetcher, store and sender explicitly, so
anything implementing these methods can stand in for the concrete
aiohttp and SQLite classes.
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from rss_webhook.fetcher import FeedResponse
from rss_webhook.models import ExtractedItem
from rss_webhook.webhook import WebhookResponse


@runtime_checkable
class FeedSource(Protocol):
    """Retrieves raw feed documents."""

    async def fetch(self, url: str) -> FeedResponse:
        """
        Fetch a feed document.

        Raises
        ------
        PermanentUpstreamError
            If the feed does not exist.
        TransportError
            If the feed could not be reached.
        """
        ...


@runtime_checkable
class SeenStore(Protocol):
    """
    Persistent seen-set and auxiliary key/value storage.

    Presence of a link hash means the item was already delivered.
    """

    async def check_existing(self, hashes: Sequence[str]) -> list[str]:
        """Return the subset of ``hashes`` already present."""
        ...

    async def store_item(self, item: ExtractedItem, ttl: float | None = None) -> None:
        """Record a delivered item under its link hash."""
        ...

    async def get(self, key: str) -> Any | None:
        """Read a JSON value, None when absent."""
        ...

    async def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Write a JSON value, optionally expiring."""
        ...

    async def cleanup_expired(self) -> int:
        """Purge expired keys and return how many were removed."""
        ...


@runtime_checkable
class MessageSender(Protocol):
    """Delivers notification text to a webhook."""

    async def send(self, url: str, content: str) -> WebhookResponse:
        """
        Post a message.

        Raises
        ------
        UpstreamError
            If delivery failed permanently or the retry budget ran out.
        """
        ...
