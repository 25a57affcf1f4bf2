"""
Processing metrics and health status.

Per-target counters are kept in the store under ``metrics:<name>``
without expiry, so they survive restarts. Recent errors are kept in
memory only.
"""

import logging
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from rss_webhook import __version__
from rss_webhook.errors import StoreError
from rss_webhook.interfaces import SeenStore

logger = logging.getLogger(__name__)

METRICS_KEY_PREFIX = "metrics:"
MAX_RECENT_ERRORS = 50


class ProcessingMetrics(BaseModel):
    """Outcome counters of one target."""

    last_run: str | None = None
    success_count: int = 0
    error_count: int = 0
    last_error: str | None = None
    last_success: bool | None = None


class ErrorRecord(BaseModel):
    """A recent processing failure."""

    timestamp: str
    service: str
    error: str


class HealthStatus(BaseModel):
    """Summary of recent processing."""

    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: str
    version: str
    last_processing: dict[str, ProcessingMetrics] = Field(default_factory=dict)
    errors: list[ErrorRecord] = Field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def metrics_key(target: str) -> str:
    """Store key holding the metrics of a target."""
    return f"{METRICS_KEY_PREFIX}{target}"


class HealthMonitor:
    """
    Records per-target outcomes and derives a health status.

    Never raises: store failures are logged and the in-memory view
    is still updated.
    """

    def __init__(
        self,
        store: SeenStore,
        now: Callable[[], datetime] = _utcnow,
        max_errors: int = MAX_RECENT_ERRORS,
    ):
        self.store = store
        self._now = now
        self._metrics: dict[str, ProcessingMetrics] = {}
        self._errors: deque[ErrorRecord] = deque(maxlen=max_errors)

    async def _load(self, target: str) -> ProcessingMetrics:
        if target in self._metrics:
            return self._metrics[target]
        try:
            stored = await self.store.get(metrics_key(target))
        except StoreError as e:
            logger.warning("Could not load metrics for '%s': %s", target, e)
            stored = None
        metrics = ProcessingMetrics.model_validate(stored) if stored else ProcessingMetrics()
        self._metrics[target] = metrics
        return metrics

    async def record_feed_processing(
        self,
        target: str,
        success: bool,
        error: str | None = None,
    ) -> ProcessingMetrics:
        """
        Record the outcome of processing one target.

        Parameters
        ----------
        target : str
            Target name.
        success : bool
            Whether the target was processed without aborting.
        error : str | None
            Failure description.

        Returns
        -------
        ProcessingMetrics
            Updated metrics of the target.
        """
        timestamp = self._now().isoformat()
        metrics = await self._load(target)

        if success:
            metrics = metrics.model_copy(
                update={
                    "last_run": timestamp,
                    "success_count": metrics.success_count + 1,
                    "last_success": True,
                }
            )
        else:
            message = error or "Unknown error"
            metrics = metrics.model_copy(
                update={
                    "last_run": timestamp,
                    "error_count": metrics.error_count + 1,
                    "last_error": message,
                    "last_success": False,
                }
            )
            self._errors.append(
                ErrorRecord(timestamp=timestamp, service=target, error=message)
            )

        self._metrics[target] = metrics

        try:
            await self.store.put(metrics_key(target), metrics.model_dump(mode="json"))
        except StoreError as e:
            logger.warning("Could not save metrics for '%s': %s", target, e)

        return metrics

    def get_status(self) -> HealthStatus:
        """
        Summarize the recorded outcomes.

        Returns
        -------
        HealthStatus
            ``healthy`` when every target's last run succeeded,
            ``unhealthy`` when all failed, ``degraded`` otherwise.
        """
        outcomes = [
            m.last_success for m in self._metrics.values() if m.last_success is not None
        ]
        if all(outcomes):
            status = "healthy"
        elif not any(outcomes):
            status = "unhealthy"
        else:
            status = "degraded"

        return HealthStatus(
            status=status,
            timestamp=self._now().isoformat(),
            version=__version__,
            last_processing=dict(self._metrics),
            errors=list(self._errors),
        )
