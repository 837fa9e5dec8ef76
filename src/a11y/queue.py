"""
In-process scan job queue.

Jobs are consumed by a fixed number of concurrent workers. A job that
raises is re-enqueued after an exponential backoff until its attempts are
exhausted, and job starts are throttled per time window.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

from a11y.constants import (
    DEFAULT_WORKER_CONCURRENCY,
    EXPONENTIAL_BACKOFF_BASE,
    QUICK_SCAN_JOB_ATTEMPTS,
    QUICK_SCAN_JOB_BACKOFF_MS,
    SCAN_JOB_ATTEMPTS,
    SCAN_JOB_BACKOFF_MS,
)
from a11y.infrastructure.rate_limiter import JobRateLimiter
from a11y.models import ScanJob

logger = logging.getLogger(__name__)

JobHandler = Callable[[ScanJob], Awaitable[object]]


@dataclass
class QueuedJob:
    """A job together with its retry policy and attempt count."""
    job: ScanJob
    attempts: int
    backoff_ms: int
    attempt: int = 0
    last_error: Optional[str] = None


def calculate_backoff_delay(backoff_ms: int, attempt: int) -> float:
    """Calculate the exponential backoff delay before a retry.

    Args:
        backoff_ms: Base delay in milliseconds
        attempt: Number of attempts already made (1-indexed)

    Returns:
        Delay in seconds: ``backoff_ms * 2^(attempt-1)``
    """
    return backoff_ms * (EXPONENTIAL_BACKOFF_BASE ** (attempt - 1)) / 1000


class ScanQueue:
    """
    FIFO queue of scan jobs with retries.

    Usage:
        queue = ScanQueue()
        queue.enqueue(ScanJob(scan_id="1", url="https://example.com"))
        await queue.consume(worker.handle_job)
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._retry_tasks: Set[asyncio.Task] = set()
        self._stopped = asyncio.Event()
        self.failed_jobs: List[QueuedJob] = []
        self.completed_jobs = 0

    def enqueue(
        self,
        job: ScanJob,
        attempts: Optional[int] = None,
        backoff_ms: Optional[int] = None,
    ) -> QueuedJob:
        """Add a job to the queue.

        Args:
            job: Job to run
            attempts: Maximum number of attempts (scan: 3, quick scan: 2)
            backoff_ms: Base retry delay (scan: 5000, quick scan: 3000)

        Returns:
            The queued job
        """
        if job.kind == "quick-scan":
            attempts = attempts or QUICK_SCAN_JOB_ATTEMPTS
            backoff_ms = backoff_ms if backoff_ms is not None else QUICK_SCAN_JOB_BACKOFF_MS
        else:
            attempts = attempts or SCAN_JOB_ATTEMPTS
            backoff_ms = backoff_ms if backoff_ms is not None else SCAN_JOB_BACKOFF_MS

        queued = QueuedJob(job=job, attempts=attempts, backoff_ms=backoff_ms)
        self._queue.put_nowait(queued)
        logger.info(f"Enqueued {job.kind} job {job.scan_id} for {job.url}")
        return queued

    def __len__(self) -> int:
        return self._queue.qsize()

    async def consume(
        self,
        handler: JobHandler,
        concurrency: int = DEFAULT_WORKER_CONCURRENCY,
        rate_limiter: Optional[JobRateLimiter] = None,
    ) -> None:
        """Run jobs until the queue is drained or ``stop()`` is called.

        Args:
            handler: Coroutine function processing one job
            concurrency: Number of jobs processed simultaneously
            rate_limiter: Throttles job starts when given
        """
        self._stopped.clear()
        workers = [
            asyncio.create_task(self._worker(i, handler, rate_limiter))
            for i in range(concurrency)
        ]
        logger.info(f"Queue consumer started with {concurrency} workers")

        drained = asyncio.create_task(self._wait_until_drained())
        stopped = asyncio.create_task(self._stopped.wait())
        try:
            await asyncio.wait({drained, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (drained, stopped, *workers, *self._retry_tasks):
                task.cancel()
            await asyncio.gather(*workers, *self._retry_tasks, return_exceptions=True)
            self._retry_tasks.clear()

        logger.info(
            f"Queue consumer stopped: {self.completed_jobs} completed, "
            f"{len(self.failed_jobs)} failed"
        )

    def stop(self) -> None:
        """Stop consuming; in-flight jobs are cancelled."""
        self._stopped.set()

    async def _wait_until_drained(self) -> None:
        while True:
            await self._queue.join()
            if not self._retry_tasks:
                return
            # Pending retries put their job back before finishing
            await asyncio.wait(set(self._retry_tasks))

    async def _worker(
        self,
        worker_id: int,
        handler: JobHandler,
        rate_limiter: Optional[JobRateLimiter],
    ) -> None:
        while True:
            queued = await self._queue.get()
            try:
                if rate_limiter:
                    waited = await rate_limiter.acquire()
                    if waited > 0:
                        logger.debug(f"Worker {worker_id} rate limited for {waited:.1f}s")
                await self._run(queued, handler)
            finally:
                self._queue.task_done()

    async def _run(self, queued: QueuedJob, handler: JobHandler) -> None:
        job = queued.job
        queued.attempt += 1

        try:
            await handler(job)
        except Exception as e:
            queued.last_error = str(e)

            if queued.attempt < queued.attempts:
                delay = calculate_backoff_delay(queued.backoff_ms, queued.attempt)
                logger.warning(
                    f"  🔄 Job {job.scan_id} failed (attempt {queued.attempt}/{queued.attempts}), "
                    f"retrying in {delay:.1f}s: {e}"
                )
                task = asyncio.create_task(self._retry_later(queued, delay))
                self._retry_tasks.add(task)
                task.add_done_callback(self._retry_tasks.discard)
            else:
                logger.error(
                    f"  ✗ Job {job.scan_id} failed permanently after {queued.attempt} attempts: {e}"
                )
                self.failed_jobs.append(queued)
            return

        self.completed_jobs += 1
        logger.info(f"  ✓ Job {job.scan_id} completed")

    async def _retry_later(self, queued: QueuedJob, delay: float) -> None:
        await asyncio.sleep(delay)
        self._queue.put_nowait(queued)
