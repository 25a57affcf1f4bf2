"""
Main entry point for RSS Webhook.

Runs the pipeline once, or repeatedly on an interval, and optionally
serves the auxiliary HTTP surface.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from urllib.parse import urlparse

import coloredlogs
from aiohttp import web

from rss_webhook.config import load_config
from rss_webhook.fetcher import FeedFetcher
from rss_webhook.health import HealthMonitor
from rss_webhook.processor import FeedProcessor, TargetReport
from rss_webhook.server import create_app
from rss_webhook.storage import Storage
from rss_webhook.webhook import WebhookSender

logger = logging.getLogger(__name__)


def redact_proxy_url(proxy_url: str) -> str:
    """
    Redact credentials from a proxy URL for safe logging.

    Parameters
    ----------
    proxy_url : str
        The proxy URL potentially containing credentials.

    Returns
    -------
    str
        The proxy URL with password redacted.
    """
    try:
        parsed = urlparse(proxy_url)
        if parsed.password:
            netloc = parsed.hostname or ""
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            if parsed.username:
                netloc = f"{parsed.username}:****@{netloc}"
            return f"{parsed.scheme}://{netloc}{parsed.path}"
        return proxy_url
    except ValueError:
        return "<proxy url>"


class RSSWebhookRelay:
    """
    Main application.

    Builds the fetcher, store, sender and processor from the
    configuration and drives runs.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the application.

        Parameters
        ----------
        config_path : str | Path
            Path to the YAML configuration file.
        """
        self.config = load_config(config_path)
        self.storage: Storage | None = None
        self.fetcher: FeedFetcher | None = None
        self.sender: WebhookSender | None = None
        self.health: HealthMonitor | None = None
        self.processor: FeedProcessor | None = None
        self._runner: web.AppRunner | None = None
        self._running = False
        self._stopped = asyncio.Event()

    async def initialize(self) -> None:
        """Create and connect all components."""
        defaults = self.config.defaults

        self.storage = Storage(
            self.config.storage.database_path,
            ttl_seconds=self.config.storage.ttl_seconds,
        )
        await self.storage.initialize()

        if defaults.proxy:
            logger.info("Using proxy: %s", redact_proxy_url(defaults.proxy))

        self.fetcher = FeedFetcher(
            timeout=defaults.request_timeout,
            max_attempts=defaults.fetch_max_attempts,
            user_agent=defaults.user_agent,
            proxy_url=defaults.proxy,
            backoff=defaults.retry_backoff,
            max_delay=defaults.retry_max_delay,
        )
        self.sender = WebhookSender(
            timeout=defaults.request_timeout,
            max_attempts=defaults.webhook_max_attempts,
            proxy_url=defaults.proxy,
            backoff=defaults.retry_backoff,
            max_delay=defaults.retry_max_delay,
            max_retry_after=defaults.max_retry_after,
        )
        self.health = HealthMonitor(self.storage)
        self.processor = FeedProcessor(
            self.config.targets,
            fetcher=self.fetcher,
            store=self.storage,
            sender=self.sender,
            health=self.health,
        )

    async def run_once(self) -> list[TargetReport]:
        """Process every target once."""
        if self.processor is None:
            raise RuntimeError("Components not initialized")
        return await self.processor.run_once()

    async def start(self) -> None:
        """Run on the configured interval until stopped."""
        logger.info("Starting RSS Webhook")
        await self.initialize()
        await self._start_server()

        self._running = True
        interval = self.config.defaults.check_interval
        logger.info(
            "RSS Webhook started with %d target(s), checking every %ds",
            len(self.config.targets),
            interval,
        )

        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Run failed: %s", e)

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def _start_server(self) -> None:
        """Serve the HTTP surface if configured."""
        server_config = self.config.server
        if server_config is None or self.processor is None or self.health is None:
            return

        app = create_app(
            self.processor,
            self.health,
            enable_http_request=server_config.enable_http_request,
        )
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, server_config.host, server_config.port)
        await site.start()
        logger.info(
            "HTTP surface listening on %s:%d (requests %s)",
            server_config.host,
            server_config.port,
            "enabled" if server_config.enable_http_request else "disabled",
        )

    def request_stop(self) -> None:
        """Make the interval loop exit after the current run."""
        self._running = False
        self._stopped.set()

    async def stop(self) -> None:
        """Stop and release all components."""
        logger.info("Stopping RSS Webhook")
        self.request_stop()

        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        if self.fetcher:
            await self.fetcher.close()
        if self.sender:
            await self.sender.close()
        if self.storage:
            await self.storage.close()

        logger.info("RSS Webhook stopped")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


async def run_once_and_exit(relay: RSSWebhookRelay) -> int:
    """
    Run every target once and release resources.

    Returns
    -------
    int
        Process exit code: 0 unless every target aborted.
    """
    try:
        await relay.initialize()
        reports = await relay.run_once()
    finally:
        await relay.stop()

    if reports and all(r.aborted for r in reports):
        return 1
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="RSS/Atom feed relay to chat webhooks",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Process every target once and exit (for cron or external schedulers)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    relay = RSSWebhookRelay(config_path)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    if args.once:
        try:
            sys.exit(loop.run_until_complete(run_once_and_exit(relay)))
        finally:
            loop.close()

    def signal_handler():
        logger.info("Received shutdown signal")
        relay.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(relay.start())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.run_until_complete(relay.stop())
        loop.close()


if __name__ == "__main__":
    main()
