"""
Worker process that keeps the ingestion queue drained.

The worker repeatedly drains the queue and sleeps for the poll interval once
a drain finds nothing due. Handler execution and retries are delegated to
the BatchDispatcher.
"""

import asyncio
import logging
import os
import signal

from ingest_queue.config import get_settings
from ingest_queue.db import close_db, init_db
from ingest_queue.errors import StoreUnavailableError
from ingest_queue.observability.logging import setup_logging
from ingest_queue.observability.tracing import setup_tracing
from ingest_queue.queue.dispatcher import BatchDispatcher
from ingest_queue.types.queue import DrainResult

logger = logging.getLogger(__name__)


class Worker:
    """
    Long-running dispatcher loop.

    Features:
    - Claims jobs with FOR UPDATE SKIP LOCKED, so many workers can share a store
    - Backs off to the poll interval when the queue is idle or unavailable
    - Graceful shutdown on SIGTERM/SIGINT after the current batch
    """

    def __init__(
        self,
        worker_id: str | None = None,
        batch_size: int | None = None,
        poll_interval: float | None = None,
        dispatcher: BatchDispatcher | None = None,
    ):
        """
        Initialize the worker.

        Args:
            worker_id: Worker identifier for logs. Defaults to hostname + PID.
            batch_size: Jobs to claim per batch.
            poll_interval: Seconds between polls when the queue is empty.
            dispatcher: Dispatcher to run batches with.
        """
        settings = get_settings()

        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.batch_size = batch_size or settings.queue_batch_size
        self.poll_interval = poll_interval or settings.worker_poll_interval_seconds
        self.max_loops = settings.worker_max_loops
        self.dispatcher = dispatcher or BatchDispatcher()

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the worker loop. Returns after stop() is called."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "batch_size": self.batch_size},
        )

        self._running = True

        while self._running:
            try:
                totals = await self.run_once()

                # A drain that ended on an empty batch means nothing is due
                if totals.total_picked == 0 or totals.loops < self.max_loops:
                    await asyncio.sleep(self.poll_interval)

            except StoreUnavailableError as e:
                logger.warning(
                    f"Queue store unavailable: {e}",
                    extra={"worker_id": self.worker_id},
                )
                await asyncio.sleep(self.poll_interval)
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id},
                )
                await asyncio.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    async def stop(self) -> None:
        """Stop the worker after the current batch."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    async def run_once(self) -> DrainResult:
        """
        Drain the queue once.

        Returns:
            DrainResult with the totals of this drain.
        """
        totals = await self.dispatcher.drain(limit=self.batch_size, max_loops=self.max_loops)
        if totals.total_picked:
            logger.info(
                f"Drained {totals.total_picked} jobs in {totals.loops} batches",
                extra={"worker_id": self.worker_id, **totals.model_dump()},
            )
        return totals


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_tracing()
    await init_db()

    worker = Worker()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
