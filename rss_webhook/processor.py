"""
Feed processing pipeline.

For each target: fetch, parse, extract, drop already-seen items,
deliver the rest in feed order and record each delivered item.
"""

import asyncio
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from rss_webhook.config import TargetConfig
from rss_webhook.errors import StoreError, UpstreamError
from rss_webhook.feed import BODY_PREVIEW_LENGTH, extract_items, parse_feed
from rss_webhook.health import HealthMonitor
from rss_webhook.interfaces import FeedSource, MessageSender, SeenStore
from rss_webhook.models import ExtractedItem
from rss_webhook.webhook import format_message

logger = logging.getLogger(__name__)


class TargetState(enum.Enum):
    """Stages a target goes through in one run."""

    FETCHING = "fetching"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    CHECKING_SEEN = "checking_seen"
    DELIVERING = "delivering"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class TargetReport:
    """
    Outcome of processing one target.

    Attributes
    ----------
    target : str
        Target name.
    state : TargetState
        ``DONE`` or ``ABORTED`` once processing finished.
    stage : TargetState
        Last stage entered; where the target stopped when aborted.
    extracted : int
        Items extracted from the feed.
    new : int
        Items not seen before.
    delivered : int
        Items delivered successfully.
    failed : int
        Items whose delivery failed.
    error : str | None
        Reason for aborting.
    """

    target: str
    state: TargetState = TargetState.FETCHING
    stage: TargetState = TargetState.FETCHING
    extracted: int = 0
    new: int = 0
    delivered: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def aborted(self) -> bool:
        """Whether processing stopped early."""
        return self.state is TargetState.ABORTED

    def enter(self, stage: TargetState) -> None:
        self.state = stage
        self.stage = stage

    def abort(self, error: str) -> "TargetReport":
        self.state = TargetState.ABORTED
        self.error = error
        return self

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "state": self.state.value,
            "stage": self.stage.value,
            "extracted": self.extracted,
            "new": self.new,
            "delivered": self.delivered,
            "failed": self.failed,
            "error": self.error,
        }


class FeedProcessor:
    """
    Runs the pipeline for a set of targets.

    Collaborators are passed in explicitly; targets are processed
    concurrently and independently of each other.
    """

    def __init__(
        self,
        targets: Sequence[TargetConfig],
        fetcher: FeedSource,
        store: SeenStore,
        sender: MessageSender,
        health: HealthMonitor | None = None,
    ):
        """
        Initialize the processor.

        Parameters
        ----------
        targets : Sequence[TargetConfig]
            Targets processed on each run.
        fetcher : FeedSource
            Retrieves feed documents.
        store : SeenStore
            Seen-set of delivered items.
        sender : MessageSender
            Delivers notifications.
        health : HealthMonitor | None
            Receives per-target outcomes, if given.
        """
        self.targets = list(targets)
        self.fetcher = fetcher
        self.store = store
        self.sender = sender
        self.health = health

    async def run_once(self) -> list[TargetReport]:
        """
        Process every enabled target once.

        A failure in one target never stops the others.

        Returns
        -------
        list[TargetReport]
            One report per enabled target, in configuration order.
        """
        try:
            await self.store.cleanup_expired()
        except StoreError as e:
            logger.warning("Failed to clean up expired entries: %s", e)

        targets = [t for t in self.targets if t.enabled]
        results = await asyncio.gather(
            *(self.process_target(target) for target in targets),
            return_exceptions=True,
        )

        reports = []
        for target, result in zip(targets, results):
            if isinstance(result, TargetReport):
                report = result
            elif isinstance(result, Exception):
                logger.error("Error processing target '%s': %s", target.name, result)
                report = TargetReport(target=target.name).abort(repr(result))
            else:
                raise result

            if self.health is not None:
                await self.health.record_feed_processing(
                    target.name, not report.aborted, report.error
                )
            reports.append(report)

        delivered = sum(r.delivered for r in reports)
        aborted = sum(1 for r in reports if r.aborted)
        logger.info(
            "Run finished: %d target(s), %d item(s) delivered, %d target(s) aborted",
            len(reports),
            delivered,
            aborted,
        )
        return reports

    async def process_target(self, target: TargetConfig) -> TargetReport:
        """
        Run the pipeline for one target.

        Parameters
        ----------
        target : TargetConfig
            Target to process.

        Returns
        -------
        TargetReport
            Outcome of the run. Fetch, parse and seen-lookup failures
            end in ``ABORTED``; item-level failures are only counted.
        """
        report = TargetReport(target=target.name)
        logger.debug("Processing target: %s", target.name)

        report.enter(TargetState.FETCHING)
        try:
            response = await self.fetcher.fetch(target.feed_url)
        except UpstreamError as e:
            logger.warning("Failed to fetch feed '%s': %s", target.name, e)
            return report.abort(str(e))

        if not response.ok:
            logger.warning(
                "Failed to fetch feed: %s",
                {
                    "target": target.name,
                    "status": response.status,
                    "body": response.text[:BODY_PREVIEW_LENGTH],
                },
            )
            return report.abort(f"HTTP {response.status} {response.reason}".strip())

        report.enter(TargetState.PARSING)
        feed = parse_feed(response.body, target.name)
        if feed is None:
            return report.abort("Feed could not be parsed")

        report.enter(TargetState.EXTRACTING)
        items = extract_items(feed)
        report.extracted = len(items)

        report.enter(TargetState.CHECKING_SEEN)
        try:
            existing = set(await self.store.check_existing([i.link_hash for i in items]))
        except StoreError as e:
            logger.error("Failed to look up seen items for '%s': %s", target.name, e)
            return report.abort(str(e))

        new_items = self._select_new(items, existing)
        report.new = len(new_items)
        if new_items:
            logger.info(
                "Found %d new item%s in '%s'",
                len(new_items),
                "" if len(new_items) == 1 else "s",
                target.name,
            )
        else:
            logger.debug("No new items in '%s'", target.name)

        report.enter(TargetState.DELIVERING)
        for item in new_items:
            try:
                delivered = await self._deliver(target, item)
            except Exception:
                logger.exception(
                    "Unexpected error delivering item '%s' of '%s'",
                    item.title[:50],
                    target.name,
                )
                delivered = False
            if delivered:
                report.delivered += 1
            else:
                report.failed += 1

        report.enter(TargetState.DONE)
        return report

    @staticmethod
    def _select_new(
        items: list[ExtractedItem], existing: set[str]
    ) -> list[ExtractedItem]:
        """Keep unseen items in feed order, once per link hash."""
        new_items = []
        selected: set[str] = set()
        for item in items:
            if item.link_hash in existing or item.link_hash in selected:
                continue
            selected.add(item.link_hash)
            new_items.append(item)
        return new_items

    async def _deliver(self, target: TargetConfig, item: ExtractedItem) -> bool:
        """
        Send one item and record it when the webhook accepted it.

        Returns
        -------
        bool
            True if the webhook accepted the message.
        """
        content = format_message(target.name, item)

        try:
            response = await self.sender.send(target.webhook_url, content)
        except UpstreamError as e:
            logger.error(
                "Failed to notify for item '%s' of '%s': %s",
                item.title[:50],
                target.name,
                e,
            )
            return False

        if not response.ok:
            logger.warning(
                "Webhook rejected item '%s': %s",
                item.title[:50],
                {"status": response.status, "body": response.body[:BODY_PREVIEW_LENGTH]},
            )
            return False

        logger.info("Sent notification for: %s", item.title[:50])

        try:
            await self.store.store_item(item)
        except StoreError as e:
            logger.error("Failed to record item '%s' as seen: %s", item.title[:50], e)

        return True
