"""
Auxiliary HTTP surface.

Exposes the health status and a manual run trigger when
``enable_http_request`` is set; otherwise answers every request with
an empty 200.
"""

import logging

from aiohttp import web

from rss_webhook.health import HealthMonitor
from rss_webhook.processor import FeedProcessor

logger = logging.getLogger(__name__)

PROCESSOR_KEY = web.AppKey("processor", FeedProcessor)
HEALTH_KEY = web.AppKey("health", HealthMonitor)


async def handle_index(request: web.Request) -> web.Response:
    """Explain how to use the other endpoints."""
    url = request.url.with_path("/run").with_query(None)
    return web.Response(
        text=(
            "RSS Webhook is running. Check GET /health for status, "
            f'or trigger a run with "curl -X POST {url}".'
        )
    )


async def handle_health(request: web.Request) -> web.Response:
    """Return the current health status as JSON."""
    status = request.app[HEALTH_KEY].get_status()
    return web.json_response(status.model_dump(mode="json"))


async def handle_run(request: web.Request) -> web.Response:
    """Run every target once and return the per-target reports."""
    logger.info("Run triggered over HTTP")
    reports = await request.app[PROCESSOR_KEY].run_once()
    return web.json_response({"reports": [r.to_dict() for r in reports]})


async def handle_disabled(request: web.Request) -> web.Response:
    """Answer any request with an empty 200."""
    return web.Response(status=200, text="")


def create_app(
    processor: FeedProcessor,
    health: HealthMonitor,
    enable_http_request: bool = False,
) -> web.Application:
    """
    Build the aiohttp application.

    Parameters
    ----------
    processor : FeedProcessor
        Processor used by the run endpoint.
    health : HealthMonitor
        Source of the health status.
    enable_http_request : bool
        Serve the real endpoints instead of empty responses.

    Returns
    -------
    web.Application
        The configured application.
    """
    app = web.Application()
    app[PROCESSOR_KEY] = processor
    app[HEALTH_KEY] = health

    if enable_http_request:
        app.router.add_get("/", handle_index)
        app.router.add_get("/health", handle_health)
        app.router.add_post("/run", handle_run)
    else:
        app.router.add_route("*", "/{tail:.*}", handle_disabled)

    return app
