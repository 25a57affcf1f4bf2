"""
RSS/Atom parsing and item extraction.

Turns fetched feed bytes into ExtractedItem objects using feedparser.
"""

import io
import logging
from typing import Any

import feedparser

from rss_webhook.errors import MalformedLinkError
from rss_webhook.links import hash_link
from rss_webhook.models import ExtractedItem, ParsedFeed, RawFeedItem

logger = logging.getLogger(__name__)

# Amount of an unparseable body written to the log
BODY_PREVIEW_LENGTH = 500


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_feed(content: bytes | str, source_label: str) -> ParsedFeed | None:
    """
    Parse a feed document.

    Parameters
    ----------
    content : bytes | str
        Raw feed XML.
    source_label : str
        Name of the target, for logging.

    Returns
    -------
    ParsedFeed | None
        The parsed feed, or None when the content is not recognized as
        RSS or Atom.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    # Some servers return leading whitespace which breaks XML declaration parsing
    content = content.lstrip()
    # A stream keeps feedparser from treating the content as a URL or path
    parsed: Any = feedparser.parse(io.BytesIO(content))

    if not parsed.get("version"):
        preview = content[:BODY_PREVIEW_LENGTH].decode("utf-8", errors="replace")
        logger.error("%s feed parsing failed", source_label)
        logger.error("Response body: %s", preview)
        return None

    if parsed.bozo and parsed.get("bozo_exception"):
        logger.warning(
            "Feed '%s' has parsing issues: %s",
            source_label,
            parsed.bozo_exception,
        )

    channel = parsed.feed
    feed = ParsedFeed(
        title=channel.get("title", ""),
        link=channel.get("link", ""),
        version=parsed.version,
        items=[
            RawFeedItem(
                id=_as_text(entry.get("id")),
                title=_as_text(entry.get("title")),
                link=_as_text(entry.get("link")),
                raw=dict(entry),
            )
            for entry in parsed.entries
        ],
    )

    logger.info(
        "Parsed feed '%s' (%s, %s): %d item(s)",
        source_label,
        feed.title or "untitled",
        feed.version,
        len(feed.items),
    )
    return feed


def extract_items(feed: ParsedFeed) -> list[ExtractedItem]:
    """
    Extract deliverable items from a parsed feed.

    Items without both a title and a link, or whose link is not a valid
    absolute URL, are skipped. Feed order is preserved.

    Parameters
    ----------
    feed : ParsedFeed
        Parsed feed.

    Returns
    -------
    list[ExtractedItem]
        Items ready for deduplication.
    """
    items = []
    for entry in feed.items:
        title = (entry.title or "").strip()
        link = (entry.link or "").strip()
        if not title or not link:
            continue

        try:
            link_hash = hash_link(link)
        except MalformedLinkError as e:
            logger.debug("Skipping item '%s': %s", title[:50], e)
            continue

        items.append(
            ExtractedItem(id=entry.id, title=title, link=link, link_hash=link_hash)
        )

    return items
