"""
Core data types shared across the pipeline.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RawFeedItem:
    """
    Unprocessed entry as read from a feed document.

    Attributes
    ----------
    id : str | None
        Entry identifier (RSS guid or Atom id).
    title : str | None
        Entry title.
    link : str | None
        Entry URL.
    raw : dict
        Original feedparser entry data.
    """

    id: str | None = None
    title: str | None = None
    link: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class ParsedFeed:
    """
    A feed document recognized as RSS or Atom.

    Attributes
    ----------
    title : str
        Feed title.
    link : str
        Feed home page.
    version : str
        Detected format, as reported by feedparser (e.g. ``rss20``).
    items : list[RawFeedItem]
        Entries in document order.
    """

    title: str = ""
    link: str = ""
    version: str = ""
    items: list[RawFeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractedItem:
    """
    A feed item ready for deduplication and delivery.

    Attributes
    ----------
    id : str | None
        Entry identifier, if the feed provided one.
    title : str
        Non-empty item title.
    link : str
        Non-empty item URL, as found in the feed.
    link_hash : str
        SHA-256 of the normalized link, the deduplication key.
    """

    id: str | None
    title: str
    link: str
    link_hash: str
