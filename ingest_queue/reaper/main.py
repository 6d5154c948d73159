"""
Stale claim reaper.

A dispatcher that dies mid-batch leaves its claimed jobs in PROCESSING. The
reaper runs periodically and returns claims older than the grace period to
PENDING, or to DEAD_LETTER when the job has no attempts left.
"""

import asyncio
import logging
import signal

from ingest_queue.config import get_settings
from ingest_queue.constants import SPAN_RECOVER_STALE
from ingest_queue.db import close_db, init_db
from ingest_queue.observability.logging import setup_logging
from ingest_queue.observability.metrics import get_metrics
from ingest_queue.observability.tracing import setup_tracing, start_span
from ingest_queue.queue.store import queue_repository

logger = logging.getLogger(__name__)


class Reaper:
    """
    Reaper that recovers stale PROCESSING claims.

    Runs periodically to:
    1. Find jobs claimed longer ago than the grace period
    2. Return them to PENDING, or DEAD_LETTER if attempts are exhausted
    3. Record metrics for monitoring
    """

    def __init__(
        self,
        interval_seconds: int | None = None,
        grace_seconds: float | None = None,
    ):
        """
        Initialize the reaper.

        Args:
            interval_seconds: Seconds between reaper runs.
            grace_seconds: How long a claim may be held before recovery.
        """
        settings = get_settings()
        self.interval = interval_seconds or settings.reaper_interval_seconds
        self.grace_seconds = (
            grace_seconds if grace_seconds is not None else settings.recovery_grace_seconds
        )
        self._running = False
        self._metrics = get_metrics()

    async def start(self) -> None:
        """Start the reaper loop."""
        logger.info(f"Reaper starting with interval {self.interval}s")
        self._running = True

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in reaper loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Reaper stopped")

    async def stop(self) -> None:
        """Stop the reaper."""
        logger.info("Reaper stopping")
        self._running = False

    async def run_once(self) -> tuple[int, int]:
        """
        Run one recovery sweep (for testing or cron-style execution).

        Returns:
            Tuple of (requeued, dead_lettered) counts.
        """
        with start_span(SPAN_RECOVER_STALE, grace_seconds=self.grace_seconds):
            async with queue_repository() as repo:
                requeued, dead_lettered = await repo.recover_stale_claims(self.grace_seconds)

        self._metrics.record_stale_claims(requeued, dead_lettered)
        return requeued, dead_lettered


async def run_async() -> None:
    """Run the reaper asynchronously."""
    setup_logging()
    setup_tracing()
    await init_db()

    reaper = Reaper()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(reaper.stop())
        )

    try:
        await reaper.start()
    finally:
        await close_db()


def run() -> None:
    """Run the reaper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
